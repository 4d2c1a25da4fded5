"""Test tree model, reconciliation and invalidation."""

from .invalidation import InvalidationTracker
from .models import (
    EventKind,
    NodeKind,
    RunState,
    TestTree,
    TestTreeNode,
    TreeEvent,
    node_id,
)
from .synchronizer import SyncReport, TreeSynchronizer, aggregate_state

__all__ = [
    "NodeKind",
    "RunState",
    "EventKind",
    "TreeEvent",
    "TestTreeNode",
    "TestTree",
    "node_id",
    "TreeSynchronizer",
    "SyncReport",
    "aggregate_state",
    "InvalidationTracker",
]
