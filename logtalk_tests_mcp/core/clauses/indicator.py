"""Clause Indicator Resolver - find the predicate indicator of a clause head.

A clause head may span several physical lines; lines are accumulated
(joined by a single space) until a neck (":-"), a grammar rule arrow
("-->") or a line ending in "." is reached. The recognized head shapes
are:

- bare atom:                    foo
- compound:                     foo(X, Y)
- multifile clause:             other::foo(X)
- multifile, parametric entity: other(P)::foo(X)

Quoted names are unquoted. Arity is the number of top-level arguments of
the balanced argument list; an unbalanced list resolves to None rather
than to a guess.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .arguments import count_arguments, find_matching_close

NECK = ":-"
GRAMMAR_ARROW = "-->"

# Terminating period, optionally followed by a line comment
CLAUSE_END = re.compile(r"\.\s*(?:%.*)?$")

_ENTITY_NAME = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_PREDICATE_NAME = re.compile(r"\s*([a-z][a-zA-Z0-9_]*|'(?:[^'\\]|\\.|'')*')")
_INDICATOR = re.compile(r"^(?P<name>.+?)(?P<separator>//|/)(?P<arity>\d+)$")


@dataclass(frozen=True)
class Indicator:
    """A predicate (name/arity) or grammar rule (name//arity) indicator."""
    name: str
    arity: int
    is_grammar_rule: bool = False

    def __str__(self) -> str:
        separator = "//" if self.is_grammar_rule else "/"
        return f"{self.name}{separator}{self.arity}"


def parse_indicator(indicator: str) -> Indicator | None:
    """Parse "name/arity" or "name//arity" (None if malformed)."""
    match = _INDICATOR.match(indicator.strip())
    if not match:
        return None
    return Indicator(
        name=match.group("name"),
        arity=int(match.group("arity")),
        is_grammar_rule=match.group("separator") == "//",
    )


def read_clause_head(lines: Sequence[str], start_line: int) -> tuple[str, bool] | None:
    """
    Read the head of the clause starting at start_line.

    Args:
        lines: Document lines
        start_line: 0-based line where the clause starts

    Returns:
        (head text, is grammar rule), or None if no terminator is found
    """
    if start_line < 0 or start_line >= len(lines):
        return None

    collected = []
    for line in lines[start_line:]:
        collected.append(line)
        if NECK in line or GRAMMAR_ARROW in line or CLAUSE_END.search(line):
            break
    else:
        return None

    clause = " ".join(collected)
    neck_pos = clause.find(NECK)
    arrow_pos = clause.find(GRAMMAR_ARROW)

    if neck_pos != -1 and (arrow_pos == -1 or neck_pos < arrow_pos):
        return clause[:neck_pos].strip(), False
    if arrow_pos != -1:
        return clause[:arrow_pos].strip(), True

    # Fact: drop the terminating period
    return CLAUSE_END.sub("", clause).strip(), False


def _skip_entity_qualifier(head: str) -> int | None:
    """Return the index after "Entity::" or "Entity(...)::" (0 if unqualified, None if unbalanced)."""
    match = _ENTITY_NAME.match(head)
    if not match:
        return 0

    pos = match.end()
    if pos < len(head) and head[pos] == "(":
        close_pos = find_matching_close(head, pos)
        if close_pos == -1:
            return None
        pos = close_pos + 1

    if head.startswith("::", pos):
        return pos + 2
    return 0


def _unquote(name: str) -> str:
    if len(name) >= 2 and name.startswith("'") and name.endswith("'"):
        return name[1:-1].replace("''", "'")
    return name


def resolve_head(head: str, is_grammar_rule: bool = False) -> Indicator | None:
    """Resolve a clause head (text before the neck) to its indicator."""
    head = head.strip()

    start = _skip_entity_qualifier(head)
    if start is None:
        return None

    match = _PREDICATE_NAME.match(head, start)
    if not match:
        return None

    name = _unquote(match.group(1))
    rest_start = match.end()
    rest = head[rest_start:]
    stripped = rest.lstrip()

    if not stripped.startswith("("):
        return Indicator(name, 0, is_grammar_rule)

    open_pos = rest_start + (len(rest) - len(stripped))
    arity = count_arguments(head, open_pos)
    if arity is None:
        return None

    return Indicator(name, arity, is_grammar_rule)


def resolve_indicator(lines: Sequence[str], start_line: int) -> str | None:
    """
    Resolve the indicator of the clause starting at start_line.

    Returns:
        "name/arity", "name//arity", or None when the head cannot be resolved
    """
    head = read_clause_head(lines, start_line)
    if head is None:
        return None

    indicator = resolve_head(*head)
    return str(indicator) if indicator else None
