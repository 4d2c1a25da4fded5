"""Start Logtalk test runs as background processes of the configured backend."""

from __future__ import annotations

import asyncio
import logging
import os

from ...constants import DEFAULT_BACKEND

logger = logging.getLogger(__name__)


def quote_atom(text: str) -> str:
    """Write text as a quoted Prolog atom with forward slashes."""
    text = text.replace(os.sep, "/")
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class LogtalkProcessRunner:
    """
    TestRunner that spawns one backend process per run.

    The process loads the vscode support object, calls the matching
    vscode::tests* goal and halts; the goal writes the results file and
    the marker file. Calls return as soon as the process has started.
    """

    def __init__(
        self,
        backend: str = DEFAULT_BACKEND,
        logtalk_home: str = "",
        logtalk_user: str = "",
    ):
        self.backend = backend
        self.logtalk_home = logtalk_home
        self.logtalk_user = logtalk_user
        self._processes: list[asyncio.subprocess.Process] = []

    async def run_all(self, scope: str) -> None:
        await self.run_directory(scope)

    async def run_directory(self, directory: str) -> None:
        tester = os.path.join(directory, "tester")
        await self._spawn(f"vscode::tests({quote_atom(directory)},{quote_atom(tester)})", directory)

    async def run_file(self, file: str) -> None:
        directory = os.path.dirname(file)
        await self._spawn(f"vscode::tests_file({quote_atom(directory)},{quote_atom(file)})", directory)

    async def run_object(self, file: str, object_name: str) -> None:
        directory = os.path.dirname(file)
        await self._spawn(f"vscode::tests_object({quote_atom(directory)},{quote_atom(object_name)})", directory)

    async def run_test(self, file: str, object_name: str, test_name: str) -> None:
        directory = os.path.dirname(file)
        await self._spawn(f"vscode::test({quote_atom(directory)},{object_name}, {test_name})", directory)

    def build_goal(self, goal: str) -> str:
        """Prefix the goal with loading the vscode support object, then halt."""
        goals = [goal, "halt"]
        if self.logtalk_home:
            vscode = f"{self.logtalk_home}/coding/vscode/vscode.lgt"
            options = ""
            if self.logtalk_user:
                options = f", [scratch_directory({quote_atom(self.logtalk_user + '/scratch/')})]"
            goals.insert(0, f"logtalk_load({quote_atom(vscode)}{options})")
        return ", ".join(goals)

    async def _spawn(self, goal: str, cwd: str) -> None:
        """Start the backend without waiting for it to finish."""
        cmd = [self.backend, "-g", self.build_goal(goal)]
        logger.info(f"Starting test run: {goal}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                stdin=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError:
            raise RuntimeError(
                f"Logtalk backend {self.backend!r} not found. Set LOGTALK_BACKEND to an installed integration script"
            ) from None

        self._processes = [p for p in self._processes if p.returncode is None]
        self._processes.append(process)
