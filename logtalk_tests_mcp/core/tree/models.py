"""Data models for the test tree."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from ..paths import path_uri


class NodeKind(str, Enum):
    """Level of a node in the Workspace > Directory > File > Object > Test hierarchy."""
    WORKSPACE = "workspace"
    DIRECTORY = "directory"
    FILE = "file"
    OBJECT = "object"
    TEST = "test"


class RunState(str, Enum):
    """Run state of a node: NOT_RUN -> QUEUED -> RUNNING -> PASSED | FAILED | SKIPPED."""
    NOT_RUN = "not_run"
    QUEUED = "queued"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.PASSED, RunState.FAILED, RunState.SKIPPED)

    @classmethod
    def from_status(cls, status: str) -> RunState | None:
        """Map a runner status string ("passed", "failed [flaky]", ...) to a terminal state."""
        status = status.strip().lower()
        for state in (cls.PASSED, cls.FAILED, cls.SKIPPED):
            if status.startswith(state.value):
                return state
        return None


class EventKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    STATE = "state"
    STALE = "stale"


@dataclass(frozen=True)
class TreeEvent:
    """Tree mutation or run state transition reported to listeners."""
    kind: EventKind
    node_id: str
    run_state: RunState | None = None


# =============================================================================
# Node ids
# =============================================================================

def node_id(
    kind: NodeKind,
    path: str,
    object_name: str | None = None,
    test_name: str | None = None,
) -> str:
    """
    Stable id of a node, derived from its kind, path and names.

    Workspace ids carry a prefix so a workspace root never collides with
    a Directory node for the same path.
    """
    uri = path_uri(path)
    if kind is NodeKind.WORKSPACE:
        return f"workspace:{uri}"
    if kind is NodeKind.OBJECT:
        return f"{uri}::{object_name}"
    if kind is NodeKind.TEST:
        return f"{uri}::{object_name}::{test_name}"
    return uri


@dataclass
class TestTreeNode:
    """
    A node of the test tree.

    Children are owned by their parent; parent_id is only a lookup key.
    results_origin names the result file that last asserted the node
    (None for Workspace and Directory nodes).
    """
    __test__ = False

    id: str
    kind: NodeKind
    label: str
    path: str
    line: int = 0
    parent_id: str | None = None
    results_origin: str | None = None
    run_state: RunState = RunState.NOT_RUN
    stale: bool = False
    object_name: str | None = None
    test_name: str | None = None
    message: str | None = None
    flaky: bool = False
    children: dict[str, TestTreeNode] = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization (recursively)."""
        result = {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "path": self.path,
            "line": self.line,
            "state": self.run_state.value,
            "stale": self.stale,
        }
        if self.results_origin:
            result["results_origin"] = self.results_origin
        if self.message:
            result["message"] = self.message
        if self.flaky:
            result["flaky"] = True
        if self.children:
            result["children"] = [
                child.to_dict()
                for child in sorted(self.children.values(), key=lambda c: (c.line, c.label))
            ]
        return result


class TestTree:
    """
    Arena of test tree nodes indexed by id.

    All structural changes go through add/remove/reparent so that the
    index, the parent's children and parent_id never disagree.
    """

    __test__ = False

    def __init__(self):
        self._nodes: dict[str, TestTreeNode] = {}
        self._roots: dict[str, TestTreeNode] = {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[TestTreeNode]:
        return iter(list(self._nodes.values()))

    @property
    def roots(self) -> list[TestTreeNode]:
        return list(self._roots.values())

    def get(self, node_id: str) -> TestTreeNode | None:
        return self._nodes.get(node_id)

    def parent(self, node: TestTreeNode) -> TestTreeNode | None:
        return self._nodes.get(node.parent_id) if node.parent_id else None

    def add(self, node: TestTreeNode, parent_id: str | None = None) -> TestTreeNode:
        """Insert a new node under parent_id (or as a root)."""
        if node.id in self._nodes:
            raise ValueError(f"Duplicate node id: {node.id}")

        if parent_id is None:
            self._roots[node.id] = node
        else:
            parent = self._nodes.get(parent_id)
            if parent is None:
                raise KeyError(f"Unknown parent node: {parent_id}")
            parent.children[node.id] = node

        node.parent_id = parent_id
        self._nodes[node.id] = node
        return node

    def remove(self, node_id: str) -> list[str]:
        """Remove a node and its subtree; returns the removed ids (deepest first)."""
        node = self._nodes.get(node_id)
        if node is None:
            return []

        removed = []
        for child_id in list(node.children):
            removed.extend(self.remove(child_id))

        parent = self.parent(node)
        if parent is not None:
            parent.children.pop(node_id, None)
        else:
            self._roots.pop(node_id, None)

        del self._nodes[node_id]
        removed.append(node_id)
        return removed

    def reparent(self, node_id: str, parent_id: str) -> None:
        """Move a node (with its subtree) under another parent."""
        node = self._nodes[node_id]
        if node.parent_id == parent_id:
            return

        new_parent = self._nodes[parent_id]
        old_parent = self.parent(node)
        if old_parent is not None:
            old_parent.children.pop(node_id, None)
        else:
            self._roots.pop(node_id, None)

        new_parent.children[node_id] = node
        node.parent_id = parent_id

    def descendants(self, node_id: str) -> list[TestTreeNode]:
        """All nodes below node_id, parents before children."""
        node = self._nodes.get(node_id)
        if node is None:
            return []

        result = []
        for child in node.children.values():
            result.append(child)
            result.extend(self.descendants(child.id))
        return result

    def snapshot(self) -> list[dict]:
        return [root.to_dict() for root in sorted(self._roots.values(), key=lambda r: r.path)]
