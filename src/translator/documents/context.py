"""Build the small textual window around a body line."""
from __future__ import annotations

from typing import Sequence

from .models import ContextWindow


def _line_at(lines: Sequence[str], index: int) -> str:
    if not lines:
        return ""
    clamped = min(max(index, 0), len(lines) - 1)
    return lines[clamped]


def context_window(body_lines: Sequence[str], index: int) -> ContextWindow:
    """Return the previous/current/next lines around ``index``.

    Neighbours are clamped to the document bounds, so the first line is its
    own "previous" line and the last line is its own "next" line.
    """

    return ContextWindow(
        previous=_line_at(body_lines, index - 1),
        current=_line_at(body_lines, index),
        next=_line_at(body_lines, index + 1),
    )


def extract_context(body_lines: Sequence[str], index: int) -> str:
    """Join the window around ``index`` into a single trimmed string."""

    return context_window(body_lines, index).as_text()


__all__ = ["context_window", "extract_context"]
