"""Runtime settings read from the environment (with constants as defaults)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .constants import (
    DEFAULT_BACKEND,
    MARKER_POLL_DELAY_SECONDS,
    RUN_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """
    Server configuration.

    Attributes:
        workspace_roots: Absolute paths of the workspace folders
        backend: Logtalk integration script used to run tests
        logtalk_home: Logtalk installation directory (LOGTALK_HOME)
        logtalk_user: Logtalk user directory (LOGTALK_USER)
        run_timeout: Seconds to wait for a run's marker file
        poll_delay: Seconds between marker file polls
        clean_on_start: Delete old results files when the server starts
    """
    workspace_roots: tuple[str, ...] = field(default_factory=tuple)
    backend: str = DEFAULT_BACKEND
    logtalk_home: str = ""
    logtalk_user: str = ""
    run_timeout: float = RUN_TIMEOUT_SECONDS
    poll_delay: float = MARKER_POLL_DELAY_SECONDS
    clean_on_start: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from LOGTALK_* environment variables."""
        raw_roots = os.getenv("LOGTALK_TESTS_WORKSPACE") or os.getcwd()
        roots = tuple(
            os.path.abspath(root)
            for root in raw_roots.split(os.pathsep)
            if root.strip()
        )

        return cls(
            workspace_roots=roots,
            backend=os.getenv("LOGTALK_BACKEND") or DEFAULT_BACKEND,
            logtalk_home=os.getenv("LOGTALK_HOME", ""),
            logtalk_user=os.getenv("LOGTALK_USER") or os.path.join(os.path.expanduser("~"), "logtalk"),
            run_timeout=_float_from_env("LOGTALK_TESTS_TIMEOUT", RUN_TIMEOUT_SECONDS),
            poll_delay=_float_from_env("LOGTALK_TESTS_POLL_DELAY", MARKER_POLL_DELAY_SECONDS),
            clean_on_start=os.getenv("LOGTALK_TESTS_CLEAN_ON_START", "").strip().lower() in ("1", "true", "yes"),
        )


def _float_from_env(name: str, default: float) -> float:
    """Read a positive float from the environment, falling back to default."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default

    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default

    if parsed <= 0:
        logger.warning(f"Ignoring non-positive {name}={value!r}, using {default}")
        return default

    return parsed
