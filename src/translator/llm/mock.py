"""Scripted completion source for tests and offline development."""
from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional, Sequence

from translator.errors import TransportError
from translator.prompt_builder import PromptPayload

from .base import CompletionSource, CompletionStream

MOCK_PREFIX = "MOCK_HINT: "


class MockCompletionSource(CompletionSource):
    """Stream predictable fragments without touching the network.

    Without scripted ``fragments`` the source echoes the start of the user
    instruction. ``fail_after`` raises ``error`` once that many fragments were
    delivered, and ``pause_after`` blocks the stream at that point until
    :attr:`resume` is set.
    """

    name = "mock"
    requires_credential = False

    def __init__(
        self,
        fragments: Optional[Sequence[str]] = None,
        *,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
        pause_after: Optional[int] = None,
        delay: float = 0.0,
    ) -> None:
        self._fragments = list(fragments) if fragments is not None else None
        self._fail_after = fail_after
        self._error = error
        self._pause_after = pause_after
        self._delay = delay
        self.resume = asyncio.Event()
        self.requests: List[PromptPayload] = []
        self.closed = 0

    def stream(
        self,
        credential: str,
        payload: PromptPayload,
        *,
        signal: Optional[asyncio.Event] = None,
    ) -> CompletionStream:
        del credential, signal  # The mock backend needs neither.
        self.requests.append(payload)
        return CompletionStream(self._iter_fragments(payload))

    def _script(self, payload: PromptPayload) -> List[str]:
        if self._fragments is not None:
            return list(self._fragments)
        return [MOCK_PREFIX, payload.user[:100]]

    async def _iter_fragments(self, payload: PromptPayload) -> AsyncIterator[str]:
        try:
            for index, fragment in enumerate(self._script(payload)):
                if self._fail_after is not None and index == self._fail_after:
                    raise self._error or TransportError("Mock completion failed")
                if self._pause_after is not None and index == self._pause_after:
                    await self.resume.wait()
                if self._delay:
                    await asyncio.sleep(self._delay)
                yield fragment
            if self._fail_after is not None and self._fail_after >= len(self._script(payload)):
                raise self._error or TransportError("Mock completion failed")
        finally:
            self.closed += 1


__all__ = ["MOCK_PREFIX", "MockCompletionSource"]
