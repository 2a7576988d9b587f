"""Split documents into an optional metadata header and a body."""
from __future__ import annotations

import re
from typing import List, Tuple

from .models import Document

HEADER_DELIMITER = "---"

_LINE_BREAK_RE = re.compile(r"\r?\n")


def split_lines(text: str) -> List[str]:
    """Split ``text`` on ``\\n`` or ``\\r\\n`` line breaks."""

    return _LINE_BREAK_RE.split(text)


def parse_structure(raw_text: str) -> Tuple[List[str], int]:
    """Return the body lines of ``raw_text`` and the number of header lines before them.

    A header only exists when the very first line is the delimiter and a
    second delimiter line closes it. Unterminated headers are treated as
    plain body text, so the offset is ``0`` and every line is returned.
    """

    lines = split_lines(raw_text)
    if not lines or lines[0] != HEADER_DELIMITER:
        return lines, 0

    for index in range(1, len(lines)):
        if lines[index] == HEADER_DELIMITER:
            offset = index + 1
            return lines[offset:], offset

    return lines, 0


def parse_document(raw_text: str) -> Document:
    """Parse ``raw_text`` into a :class:`Document` view."""

    body_lines, offset = parse_structure(raw_text)
    header = split_lines(raw_text)[:offset] if offset else None
    return Document(text=raw_text, header=header, body_lines=body_lines, offset=offset)


__all__ = ["HEADER_DELIMITER", "parse_document", "parse_structure", "split_lines"]
