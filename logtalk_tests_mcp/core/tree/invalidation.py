"""Invalidation Tracker - mark test results stale when their source is edited."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..paths import normalize_path
from .models import EventKind, NodeKind, TreeEvent, node_id

if TYPE_CHECKING:
    from ..context import WorkspaceContext

logger = logging.getLogger(__name__)


class InvalidationTracker:
    """
    Set the stale overlay on a file's nodes after an edit.

    Nodes are never removed and their last run state is kept; the flag
    is cleared by the next fresh terminal update from a parse pass.
    """

    def __init__(self, context: WorkspaceContext):
        self._context = context

    def on_document_changed(self, file_path: str, is_dirty: bool = True) -> list[str]:
        """
        Handle a source edit notification.

        Args:
            file_path: Path of the edited source file
            is_dirty: Whether the buffer now differs from disk

        Returns:
            Ids of the nodes newly marked stale
        """
        if not is_dirty:
            return []

        tree = self._context.tree
        file_node = tree.get(node_id(NodeKind.FILE, normalize_path(file_path)))
        if file_node is None or file_node.kind is not NodeKind.FILE:
            return []

        marked = []
        for node in [file_node, *tree.descendants(file_node.id)]:
            if not node.stale:
                node.stale = True
                marked.append(node.id)

        if marked:
            logger.debug(f"Marked {len(marked)} test items stale for {file_node.path}")
            self._context.emit(TreeEvent(EventKind.STALE, marked_id) for marked_id in marked)
        return marked
