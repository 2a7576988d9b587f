"""Assemble streamed fragments of one session onto a display surface."""
from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from translator.display import DisplaySurface
from translator.telemetry import emit_session_transition

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED})


@dataclass(eq=False, slots=True)
class StreamSession:
    """State of one outstanding request."""

    session_id: int
    signal: asyncio.Event = field(default_factory=asyncio.Event)
    state: SessionState = SessionState.LOADING
    fragments: List[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.perf_counter)

    @property
    def text(self) -> str:
        return "".join(self.fragments)

    @property
    def settled(self) -> bool:
        return self.state in TERMINAL_STATES


class ResponseAssembler:
    """Apply session output to a display surface, one current session at a time.

    Every write names the session it belongs to. Writes from a session that
    was cancelled or superseded are dropped, so a slow stream can never
    overwrite a newer session's output.
    """

    def __init__(self, display: DisplaySurface) -> None:
        self._display = display
        self._current: Optional[StreamSession] = None
        self._ids = itertools.count(1)

    @property
    def display(self) -> DisplaySurface:
        return self._display

    @property
    def current(self) -> Optional[StreamSession]:
        return self._current

    def begin(self, on_begin: Optional[Callable[[], None]] = None) -> StreamSession:
        """Cancel any active session, clear the display and start a new session.

        ``on_begin`` runs once the previous session is cancelled and before
        the display is cleared, so nothing the old session writes reaches
        whatever it sets up.
        """

        previous = self._current
        if previous is not None and not previous.settled:
            self.cancel(previous)
        if on_begin is not None:
            on_begin()
        self._display.clear()
        session = StreamSession(session_id=next(self._ids))
        self._current = session
        self._display.show_loading()
        LOGGER.debug("Session %s started", session.session_id)
        return session

    def is_current(self, session: StreamSession) -> bool:
        return session is self._current and not session.signal.is_set()

    def _accepts(self, session: StreamSession) -> bool:
        return self.is_current(session) and not session.settled

    def append(self, session: StreamSession, fragment: str) -> bool:
        if not self._accepts(session):
            return False
        if session.state is SessionState.LOADING:
            self._transition(session, SessionState.STREAMING)
        session.fragments.append(fragment)
        self._display.append_fragment(fragment)
        return True

    def finalize(self, session: StreamSession, final_text: str) -> bool:
        if not self._accepts(session):
            return False
        self._transition(session, SessionState.COMPLETED)
        self._display.set_final(final_text)
        return True

    def fail(self, session: StreamSession, message: str) -> bool:
        if not self._accepts(session):
            return False
        self._transition(session, SessionState.FAILED)
        self._display.show_error(message)
        return True

    def cancel(self, session: Optional[StreamSession] = None) -> bool:
        """Signal cancellation of ``session`` (default: the current one)."""

        target = session or self._current
        if target is None or target.settled:
            return False
        target.signal.set()
        self._transition(target, SessionState.CANCELLED)
        return True

    @staticmethod
    def _transition(session: StreamSession, state: SessionState) -> None:
        previous = session.state
        session.state = state
        emit_session_transition(
            session_id=session.session_id,
            previous=previous.value,
            current=state.value,
        )


__all__ = ["ResponseAssembler", "SessionState", "StreamSession", "TERMINAL_STATES"]
