"""Shared state for one workspace: the test tree, coverage data and event listeners.

A single WorkspaceContext is constructed per server and passed to every
component; tree mutation goes through the TreeSynchronizer and the
InvalidationTracker, coverage mutation through the CoverageProjector.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from .paths import is_within, normalize_path
from .results.models import CoverageRecord
from .tree.models import TestTree, TreeEvent

logger = logging.getLogger(__name__)

TreeListener = Callable[[TreeEvent], None]


class WorkspaceContext:
    """Owned state shared by the synchronizer, projector, tracker and coordinator."""

    def __init__(self, workspace_roots: Iterable[str]):
        self.workspace_roots: tuple[str, ...] = tuple(
            sorted({normalize_path(root) for root in workspace_roots})
        )
        self.tree = TestTree()
        # normalized absolute path -> coverage records of the last pass for that file
        self.coverage: dict[str, list[CoverageRecord]] = {}
        # Serializes parse-and-reconcile passes
        self.reconcile_lock = asyncio.Lock()
        self._listeners: list[TreeListener] = []

    def workspace_root_for(self, path: str) -> str | None:
        """Innermost workspace root containing path."""
        containing = [root for root in self.workspace_roots if is_within(root, path)]
        return max(containing, key=len) if containing else None

    def subscribe(self, listener: TreeListener) -> Callable[[], None]:
        """Register a tree event listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def emit(self, events: Iterable[TreeEvent]) -> None:
        """Deliver events to listeners; a failing listener does not stop delivery."""
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception(f"Tree listener failed on {event.kind.value} {event.node_id}")
