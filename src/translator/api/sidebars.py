"""API router exposing sidebars and the suggestion stream."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from translator.display import DisplayEvent
from translator.documents import Position
from translator.services.suggestions import (
    Sidebar,
    SuggestionOutcome,
    SuggestionRequest,
    SuggestionService,
    get_suggestion_service,
)
from translator.streaming import SessionState

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/sidebars", tags=["sidebars"])


class CursorModel(BaseModel):
    """0-based cursor position in the active document."""

    line: int = Field(..., ge=0)
    ch: int = Field(0, ge=0)


class SuggestionBody(BaseModel):
    """Request body accepted by the suggestion endpoint."""

    cursor: CursorModel
    active_path: Optional[str] = Field(None, description="Vault-relative path of the active document.")
    active_text: Optional[str] = Field(None, description="Current text of the active document.")
    mode: Literal["general", "words"] = "general"

    def to_request(self) -> SuggestionRequest:
        return SuggestionRequest(
            cursor=Position(line=self.cursor.line, ch=self.cursor.ch),
            active_path=self.active_path,
            active_text=self.active_text,
            mode=self.mode,
        )


class SessionSummary(BaseModel):
    session_id: int
    state: str


class SidebarResponse(BaseModel):
    """Rendered state of a sidebar."""

    sidebar_id: str
    status: str
    text: str
    html: str = ""
    session: Optional[SessionSummary] = None


def _serialise_sidebar(sidebar: Sidebar) -> SidebarResponse:
    session = sidebar.controller.current_session
    summary = None
    if session is not None:
        summary = SessionSummary(session_id=session.session_id, state=session.state.value)
    return SidebarResponse(
        sidebar_id=sidebar.sidebar_id,
        status=sidebar.display.status.value,
        text=sidebar.display.text,
        html=sidebar.display.html,
        session=summary,
    )


def _require_sidebar(service: SuggestionService, sidebar_id: str) -> Sidebar:
    sidebar = service.get_sidebar(sidebar_id)
    if sidebar is None:
        raise HTTPException(status_code=404, detail=f"Sidebar '{sidebar_id}' is not open")
    return sidebar


def _outcome_event(task: "asyncio.Task[SuggestionOutcome]") -> DisplayEvent:
    if task.cancelled():
        return DisplayEvent("outcome", {"state": SessionState.CANCELLED.value})
    error = task.exception()
    if error is not None:
        return DisplayEvent(
            "outcome",
            {"state": SessionState.FAILED.value, "message": f"Unexpected error: {error}"},
        )
    outcome = task.result()
    return DisplayEvent(
        "outcome",
        {
            "state": outcome.state.value,
            "session_id": outcome.session_id,
            "message": outcome.message,
            "text": outcome.text,
            "english_line": outcome.english_line,
            "error": outcome.error,
        },
    )


def start_suggestion(
    sidebar: Sidebar,
    request: SuggestionRequest,
) -> tuple["asyncio.Queue[Optional[DisplayEvent]]", "asyncio.Task[SuggestionOutcome]"]:
    """Run a suggestion for ``sidebar`` in a task feeding a queue of display events.

    The queue is attached only once the previous session on the sidebar is
    cancelled, and it ends with an ``outcome`` event followed by ``None``.
    """

    queue: asyncio.Queue[Optional[DisplayEvent]] = asyncio.Queue()
    task = asyncio.create_task(
        sidebar.controller.request_suggestion(request, on_begin=lambda: sidebar.display.attach(queue))
    )

    def _settle(finished: "asyncio.Task[SuggestionOutcome]") -> None:
        sidebar.display.detach(queue)
        queue.put_nowait(_outcome_event(finished))
        queue.put_nowait(None)

    task.add_done_callback(_settle)
    return queue, task


async def _event_stream(
    queue: "asyncio.Queue[Optional[DisplayEvent]]",
    task: "asyncio.Task[SuggestionOutcome]",
) -> AsyncIterator[str]:
    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            yield event.to_sse()
    finally:
        if not task.done():
            LOGGER.info("Client disconnected; cancelling its suggestion task")
            task.cancel()


@router.post("/{sidebar_id}", response_model=SidebarResponse)
def open_sidebar(
    sidebar_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
) -> SidebarResponse:
    """Open (or reuse) the sidebar that suggestions are rendered into."""

    return _serialise_sidebar(service.open_sidebar(sidebar_id))


@router.get("/{sidebar_id}", response_model=SidebarResponse)
def read_sidebar(
    sidebar_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
) -> SidebarResponse:
    return _serialise_sidebar(_require_sidebar(service, sidebar_id))


@router.delete("/{sidebar_id}", status_code=204)
def close_sidebar(
    sidebar_id: str,
    service: SuggestionService = Depends(get_suggestion_service),
) -> None:
    """Close a sidebar, cancelling the suggestion it is receiving."""

    if not service.close_sidebar(sidebar_id):
        raise HTTPException(status_code=404, detail=f"Sidebar '{sidebar_id}' is not open")


@router.post("/{sidebar_id}/suggestions")
async def request_suggestion(
    sidebar_id: str,
    body: SuggestionBody,
    service: SuggestionService = Depends(get_suggestion_service),
) -> StreamingResponse:
    """Start a suggestion session and stream its display events."""

    sidebar = _require_sidebar(service, sidebar_id)
    queue, task = start_suggestion(sidebar, body.to_request())
    return StreamingResponse(_event_stream(queue, task), media_type="text/event-stream")
