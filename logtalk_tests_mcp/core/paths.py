"""Path helpers shared by the parser, tree and runner."""

import os
import re
from pathlib import Path

_REPEATED_SLASHES = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and return an absolute, normalized path."""
    collapsed = _REPEATED_SLASHES.sub("/", path.strip())
    return os.path.normpath(os.path.abspath(collapsed))


def path_uri(path: str) -> str:
    """Return the file:// URI of a normalized absolute path."""
    return Path(path).as_uri()


def is_strict_prefix(ancestor: str, path: str) -> bool:
    """True when ancestor is a proper parent directory of path."""
    if ancestor == path:
        return False
    return path.startswith(ancestor.rstrip(os.sep) + os.sep)


def is_within(root: str, path: str) -> bool:
    """True when path equals root or lies below it."""
    return root == path or is_strict_prefix(root, path)
