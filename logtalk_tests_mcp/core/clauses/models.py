"""Source range model for clause extents."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceRange:
    """A 0-based line/character range in a source document."""
    start_line: int
    start_character: int
    end_line: int
    end_character: int

    def to_dict(self) -> dict:
        return {
            "start": {"line": self.start_line, "character": self.start_character},
            "end": {"line": self.end_line, "character": self.end_character},
        }
