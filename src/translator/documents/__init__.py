"""Document structure parsing, context extraction and line alignment."""
from __future__ import annotations

from .alignment import END_OF_SOURCE, align
from .context import context_window, extract_context
from .models import Alignment, BodyPosition, ContextWindow, Document, Position
from .structure import HEADER_DELIMITER, parse_document, parse_structure, split_lines

__all__ = [
    "END_OF_SOURCE",
    "HEADER_DELIMITER",
    "Alignment",
    "BodyPosition",
    "ContextWindow",
    "Document",
    "Position",
    "align",
    "context_window",
    "extract_context",
    "parse_document",
    "parse_structure",
    "split_lines",
]
