"""Abstractions for streaming completions from a remote model."""
from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional

from translator.prompt_builder import PromptPayload


class CompletionStream:
    """Ordered text fragments of one completion.

    Fragments are recorded as they are consumed; :attr:`final_text` is their
    concatenation and only becomes available once the stream is exhausted.
    Closing the stream tears down the underlying request.
    """

    def __init__(self, fragments: AsyncIterator[str]) -> None:
        self._fragments = fragments
        self._parts: List[str] = []
        self._exhausted = False

    async def __aenter__(self) -> "CompletionStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        async for fragment in self._fragments:
            if not fragment:
                continue
            self._parts.append(fragment)
            yield fragment
        self._exhausted = True

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def fragment_count(self) -> int:
        return len(self._parts)

    @property
    def final_text(self) -> str:
        if not self._exhausted:
            raise RuntimeError("final_text is only available once the stream is exhausted")
        return "".join(self._parts)

    async def aclose(self) -> None:
        aclose = getattr(self._fragments, "aclose", None)
        if aclose is not None:
            await aclose()


async def abortable(stream: CompletionStream, signal: asyncio.Event) -> AsyncIterator[str]:
    """Yield fragments of ``stream`` until it ends or ``signal`` is set.

    Each fragment is raced against the signal, so an abort does not wait for
    the next network read to complete.
    """

    iterator = stream.__aiter__()
    abort_waiter = asyncio.ensure_future(signal.wait())
    next_fragment: Optional[asyncio.Future] = None
    try:
        while not signal.is_set():
            next_fragment = asyncio.ensure_future(iterator.__anext__())
            done, _ = await asyncio.wait(
                {next_fragment, abort_waiter}, return_when=asyncio.FIRST_COMPLETED
            )
            if next_fragment not in done:
                return
            try:
                fragment = next_fragment.result()
            except StopAsyncIteration:
                return
            yield fragment
    finally:
        abort_waiter.cancel()
        # The generator cannot be closed while a read is still running in it.
        if next_fragment is not None and not next_fragment.done():
            next_fragment.cancel()
            with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                await next_fragment
        await iterator.aclose()


class CompletionSource(ABC):
    """Common contract for remote completion backends."""

    name: str = "unknown"
    requires_credential: bool = True

    @abstractmethod
    def stream(
        self,
        credential: str,
        payload: PromptPayload,
        *,
        signal: Optional[asyncio.Event] = None,
    ) -> CompletionStream:
        """Start a completion for ``payload`` and return its fragment stream."""


__all__ = ["CompletionSource", "CompletionStream", "abortable"]
