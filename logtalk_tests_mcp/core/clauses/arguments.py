"""Bracket matching and argument splitting for clause heads."""

from typing import Final

OPENERS: Final[dict[str, str]] = {"(": ")", "[": "]", "{": "}"}
CLOSERS: Final[frozenset[str]] = frozenset(OPENERS.values())
QUOTES: Final[frozenset[str]] = frozenset({"'", '"', "`"})


def find_matching_close(text: str, open_pos: int) -> int:
    """
    Find the bracket closing the one at open_pos.

    Parentheses, square brackets and curly braces are tracked on a stack
    against their own closers; quoted text and backslash escapes inside
    quotes are skipped.

    Args:
        text: Text to scan
        open_pos: Index of an opening bracket

    Returns:
        Index of the matching closer, or -1 if the span is unbalanced
    """
    if open_pos >= len(text) or text[open_pos] not in OPENERS:
        return -1

    stack = [OPENERS[text[open_pos]]]
    quote: str | None = None
    escaped = False

    for i in range(open_pos + 1, len(text)):
        char = text[i]

        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue

        if char in QUOTES:
            quote = char
        elif char in OPENERS:
            stack.append(OPENERS[char])
        elif char in CLOSERS:
            if char != stack.pop():
                return -1
            if not stack:
                return i

    return -1


def split_arguments(args_text: str) -> list[str]:
    """Split an argument list (without outer parentheses) at top-level commas."""
    if not args_text.strip():
        return []

    args = []
    current = []
    depth = 0
    quote: str | None = None
    escaped = False

    for char in args_text:
        if quote:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue

        if char in QUOTES:
            quote = char
        elif char in OPENERS:
            depth += 1
        elif char in CLOSERS:
            depth -= 1
        elif char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue

        current.append(char)

    args.append("".join(current).strip())
    return args


def count_arguments(text: str, open_pos: int) -> int | None:
    """Arity of the parenthesized argument list at open_pos (None if unbalanced)."""
    close_pos = find_matching_close(text, open_pos)
    if close_pos == -1:
        return None
    return len(split_arguments(text[open_pos + 1:close_pos]))
