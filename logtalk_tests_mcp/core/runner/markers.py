"""Marker file protocol: the runner writes "<scratch>/.{operation}_done" when finished."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from ...constants import MARKER_POLL_DELAY_SECONDS, MARKER_TEMPLATE, RUN_TIMEOUT_SECONDS
from ..errors import RunTimeout

logger = logging.getLogger(__name__)


def marker_path(directory: str, operation: str) -> str:
    return os.path.join(directory, MARKER_TEMPLATE.format(operation=operation))


async def wait_for_marker(
    path: str,
    timeout: float = RUN_TIMEOUT_SECONDS,
    poll_delay: float = MARKER_POLL_DELAY_SECONDS,
) -> None:
    """
    Wait until the marker file exists, then delete it.

    Raises:
        RunTimeout: If the marker does not appear within timeout seconds
    """
    marker = Path(path)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while not marker.exists():
        if loop.time() >= deadline:
            raise RunTimeout(path, timeout)
        await asyncio.sleep(poll_delay)

    logger.debug(f"Marker observed: {path}")
    marker.unlink(missing_ok=True)
