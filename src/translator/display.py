"""Display surfaces that receive suggestion output."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol, runtime_checkable

from markdown_it import MarkdownIt

LOADING_TEXT = "Loading…"


@runtime_checkable
class DisplaySurface(Protocol):
    """Where a session renders its output."""

    def show_loading(self) -> None:
        ...

    def append_fragment(self, text: str) -> None:
        ...

    def set_final(self, text: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...

    def clear(self) -> None:
        ...


class DisplayStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    STREAMING = "streaming"
    FINAL = "final"
    ERROR = "error"


def _markdown() -> MarkdownIt:
    # Model output is untrusted; raw HTML is escaped rather than passed through.
    return MarkdownIt("commonmark", {"html": False})


class IncrementalRenderer:
    """Render Markdown to HTML as text arrives.

    Each written chunk is rendered on its own, so syntax split across chunks
    (``"**bo"`` then ``"ld**"``) stays literal until :meth:`replay` renders
    the whole text in one pass.
    """

    def __init__(self, markdown: Optional[MarkdownIt] = None) -> None:
        self._markdown = markdown or _markdown()
        self._chunks: List[str] = []
        self._html: List[str] = []

    def write(self, text: str) -> str:
        """Render ``text`` after what was already written; returns its HTML."""
        html = self._markdown.renderInline(text)
        self._chunks.append(text)
        self._html.append(html)
        return html

    def replay(self, text: str) -> str:
        """Discard previous output and render ``text`` as a complete document."""
        self.reset()
        html = self._markdown.render(text)
        self._chunks.append(text)
        self._html.append(html)
        return html

    def reset(self) -> None:
        self._chunks = []
        self._html = []

    @property
    def source(self) -> str:
        return "".join(self._chunks)

    @property
    def rendered(self) -> str:
        return "".join(self._html)


class BufferedDisplay:
    """In-memory display surface keeping the status, raw text and rendered HTML."""

    def __init__(self) -> None:
        self._renderer = IncrementalRenderer()
        self.status = DisplayStatus.IDLE
        self.error: Optional[str] = None

    @property
    def text(self) -> str:
        if self.status is DisplayStatus.LOADING:
            return LOADING_TEXT
        if self.status is DisplayStatus.ERROR:
            return f"Error: {self.error}"
        return self._renderer.source

    @property
    def html(self) -> str:
        if self.status in (DisplayStatus.STREAMING, DisplayStatus.FINAL):
            return self._renderer.rendered
        return ""

    def show_loading(self) -> None:
        self._renderer.reset()
        self.error = None
        self.status = DisplayStatus.LOADING

    def append_fragment(self, text: str) -> None:
        self._append(text)

    def _append(self, text: str) -> str:
        if self.status is not DisplayStatus.STREAMING:
            self._renderer.reset()
            self.status = DisplayStatus.STREAMING
        return self._renderer.write(text)

    def set_final(self, text: str) -> None:
        self._finalize(text)

    def _finalize(self, text: str) -> str:
        # Replay from scratch so partial renders never leak into the result.
        html = self._renderer.replay(text)
        self.status = DisplayStatus.FINAL
        return html

    def show_error(self, message: str) -> None:
        self._renderer.reset()
        self.error = message
        self.status = DisplayStatus.ERROR

    def clear(self) -> None:
        self._renderer.reset()
        self.error = None
        self.status = DisplayStatus.IDLE


@dataclass(frozen=True, slots=True)
class DisplayEvent:
    """One display operation, serialisable as a server-sent event."""

    kind: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> str:
        return f"event: {self.kind}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"


class EventStreamDisplay(BufferedDisplay):
    """Buffered display that also forwards each operation to an attached queue.

    ``fragment`` events carry the HTML of that fragment alone; ``final``
    carries the full replayed render, which replaces everything before it.
    """

    def __init__(self) -> None:
        super().__init__()
        self._queue: Optional[asyncio.Queue] = None

    def attach(self, queue: asyncio.Queue) -> None:
        self._queue = queue

    def detach(self, queue: Optional[asyncio.Queue] = None) -> None:
        if queue is None or queue is self._queue:
            self._queue = None

    def _publish(self, kind: str, **data: Any) -> None:
        if self._queue is not None:
            self._queue.put_nowait(DisplayEvent(kind, data))

    def show_loading(self) -> None:
        super().show_loading()
        self._publish("loading", text=LOADING_TEXT)

    def append_fragment(self, text: str) -> None:
        html = self._append(text)
        self._publish("fragment", text=text, html=html)

    def set_final(self, text: str) -> None:
        html = self._finalize(text)
        self._publish("final", text=text, html=html)

    def show_error(self, message: str) -> None:
        super().show_error(message)
        self._publish("error", message=message)

    def clear(self) -> None:
        super().clear()
        self._publish("clear")


__all__ = [
    "BufferedDisplay",
    "DisplayEvent",
    "DisplayStatus",
    "DisplaySurface",
    "EventStreamDisplay",
    "IncrementalRenderer",
    "LOADING_TEXT",
]
