"""Match the cursor line in the translation to a line of the source document."""
from __future__ import annotations

import logging

from translator.errors import CursorInHeaderError

from .context import extract_context
from .models import Alignment, Position
from .structure import parse_document

END_OF_SOURCE = "[End of source file]"

LOGGER = logging.getLogger(__name__)


def align(target_raw: str, target_position: Position, source_raw: str) -> Alignment:
    """Pair the cursor's body line with the same body line of the source.

    Correspondence is purely positional: body line ``N`` of the translation
    maps to body line ``N`` of the source. Documents whose bodies diverge in
    length or ordering are not reconciled.

    Raises:
        CursorInHeaderError: the cursor is on a line of the target's header.
    """

    target = parse_document(target_raw)
    source = parse_document(source_raw)

    body_position = target.to_body_position(target_position)
    if body_position.in_header:
        raise CursorInHeaderError(target_position.line, target.offset)

    body_index = body_position.line
    end_of_source = body_index >= len(source.body_lines)
    english_line = END_OF_SOURCE if end_of_source else source.body_lines[body_index]
    context = extract_context(target.body_lines, body_index)

    LOGGER.debug(
        "Aligned cursor line %s (offset %s) to source body line %s",
        target_position.line,
        target.offset,
        body_index,
    )
    return Alignment(
        english_line=english_line,
        context=context,
        body_index=body_index,
        target_offset=target.offset,
        source_line_count=len(source.body_lines),
        end_of_source=end_of_source,
    )


__all__ = ["END_OF_SOURCE", "align"]
