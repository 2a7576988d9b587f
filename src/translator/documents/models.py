"""Data models describing documents and positions inside them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class Position:
    """Cursor position in raw line numbering (header lines included), 0-based."""

    line: int
    ch: int = 0


@dataclass(frozen=True, slots=True)
class BodyPosition:
    """Position relative to the first body line; negative lines fall inside the header."""

    line: int
    ch: int = 0

    @property
    def in_header(self) -> bool:
        return self.line < 0


@dataclass(slots=True)
class Document:
    """Parsed view of a document's raw text.

    Built fresh from the current text for every request and never cached.
    """

    text: str
    header: Optional[List[str]]
    body_lines: List[str]
    offset: int

    @property
    def has_header(self) -> bool:
        return self.header is not None

    def to_body_position(self, position: Position) -> BodyPosition:
        return BodyPosition(line=position.line - self.offset, ch=position.ch)


@dataclass(frozen=True, slots=True)
class ContextWindow:
    """Previous, current and next body lines around an index."""

    previous: str
    current: str
    next: str

    def as_text(self) -> str:
        return f"{self.previous}\n{self.current}\n{self.next}".strip()


@dataclass(frozen=True, slots=True)
class Alignment:
    """Source line matched to the cursor plus the translator's local context."""

    english_line: str
    context: str
    body_index: int
    target_offset: int = 0
    source_line_count: int = 0
    end_of_source: bool = False
