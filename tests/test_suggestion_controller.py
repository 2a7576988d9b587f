"""Tests for suggestion sessions run against a buffered display."""
from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

import httpx
import pytest

from translator.api.sidebars import _event_stream, start_suggestion
from translator.display import BufferedDisplay, DisplayStatus
from translator.documents import Position
from translator.llm import AnthropicCompletionSource, CompletionSource, CompletionStream, MockCompletionSource
from translator.prompt_builder import PromptPayload
from translator.services import SuggestionController, SuggestionRequest, SuggestionService
from translator.services.suggestions import (
    MISSING_KEY_MESSAGE,
    NO_ACTIVE_FILE_MESSAGE,
    NO_SIDEBAR_MESSAGE,
    NO_SOURCE_MESSAGE,
    SOURCE_NOT_FOUND_MESSAGE,
)
from translator.streaming import SessionState

# Body line 1 of notes/target.md ("Hola\n" after a three line header).
TARGET_REQUEST = SuggestionRequest(cursor=Position(line=4), active_path="notes/target.md")


class SequencedSource(CompletionSource):
    """Hands each request to the next scripted source."""

    name = "sequenced"
    requires_credential = False

    def __init__(self, *sources: MockCompletionSource) -> None:
        self._sources = list(sources)

    def stream(
        self,
        credential: str,
        payload: PromptPayload,
        *,
        signal: Optional[asyncio.Event] = None,
    ) -> CompletionStream:
        return self._sources.pop(0).stream(credential, payload, signal=signal)


async def _wait_until(predicate: Callable[[], bool]) -> None:
    for _ in range(400):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition was not reached")


def _controller(vault, settings_store, source, display=None) -> SuggestionController:
    return SuggestionController(
        vault=vault,
        settings_store=settings_store,
        completion_source=source,
        display=display if display is not None else BufferedDisplay(),
        sidebar_id="test",
    )


def test_end_to_end_suggestion_renders_final_text(vault, settings_store) -> None:
    source = MockCompletionSource(["Mun", "do"])
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.state is SessionState.COMPLETED
    assert outcome.english_line == "World"
    assert outcome.text == "Mundo"
    assert outcome.message is None
    assert display.status is DisplayStatus.FINAL
    assert display.text == "Mundo"
    assert '"World"' in source.requests[0].user
    assert '"""\nHola\n"""' in source.requests[0].user
    assert source.closed == 1


def test_active_text_takes_precedence_over_path(vault, settings_store) -> None:
    source = MockCompletionSource(["ok"])
    controller = _controller(vault, settings_store, source)
    request = SuggestionRequest(cursor=Position(line=0), active_text="Hola", active_path="missing.md")

    outcome = asyncio.run(controller.request_suggestion(request))

    assert outcome.state is SessionState.COMPLETED
    assert outcome.english_line == "Hello"


def test_request_without_display_fails(vault, settings_store) -> None:
    controller = SuggestionController(
        vault=vault,
        settings_store=settings_store,
        completion_source=MockCompletionSource(),
    )

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.state is SessionState.FAILED
    assert outcome.message == NO_SIDEBAR_MESSAGE
    assert outcome.session_id is None


def test_request_without_active_document_fails(vault, settings_store) -> None:
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, MockCompletionSource(), display)

    outcome = asyncio.run(controller.request_suggestion(SuggestionRequest(cursor=Position(line=0))))

    assert outcome.message == NO_ACTIVE_FILE_MESSAGE
    assert outcome.error == "NoActiveDocumentError"
    assert display.status is DisplayStatus.IDLE


def test_request_without_source_document_fails(vault, settings_store) -> None:
    settings_store.update(source_file_path="")
    source = MockCompletionSource()
    controller = _controller(vault, settings_store, source)

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.state is SessionState.FAILED
    assert outcome.message == NO_SOURCE_MESSAGE
    assert source.requests == []


def test_missing_credential_fails_before_network_call(vault, settings_store) -> None:
    settings_store.update(anthropic_api_key="")
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    source = AnthropicCompletionSource(transport=httpx.MockTransport(handler))
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.message == MISSING_KEY_MESSAGE
    assert outcome.error == "ConfigurationMissingError"
    assert calls == []
    assert display.status is DisplayStatus.IDLE


def test_unresolvable_source_document_fails(vault, settings_store) -> None:
    settings_store.update(source_file_path="gone.md")
    controller = _controller(vault, settings_store, MockCompletionSource())

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.message == SOURCE_NOT_FOUND_MESSAGE
    assert outcome.error == "SourceUnresolvedError"


def test_cursor_in_header_fails_without_touching_display(vault, settings_store) -> None:
    source = MockCompletionSource()
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)
    request = SuggestionRequest(cursor=Position(line=1), active_path="notes/target.md")

    outcome = asyncio.run(controller.request_suggestion(request))

    assert outcome.state is SessionState.FAILED
    assert outcome.error == "CursorInHeaderError"
    assert "header" in outcome.message
    assert display.status is DisplayStatus.IDLE
    assert source.requests == []


def test_stream_failure_replaces_partial_output_with_error(vault, settings_store) -> None:
    source = MockCompletionSource(["Mun", "do"], fail_after=1)
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.state is SessionState.FAILED
    assert outcome.message == "Mock completion failed"
    assert outcome.error == "TransportError"
    assert display.status is DisplayStatus.ERROR
    assert display.text == "Error: Mock completion failed"


def test_unexpected_stream_error_is_reported(vault, settings_store) -> None:
    source = MockCompletionSource(["a"], fail_after=0, error=KeyError("boom"))
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    assert outcome.state is SessionState.FAILED
    assert outcome.message.startswith("Unexpected error:")
    assert display.status is DisplayStatus.ERROR


def test_new_request_supersedes_running_session(vault, settings_store) -> None:
    first = MockCompletionSource(["uno", "dos", "tres"], pause_after=1)
    second = MockCompletionSource(["fin", "al"])
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, SequencedSource(first, second), display)

    async def _run():
        first_task = asyncio.create_task(controller.request_suggestion(TARGET_REQUEST))
        await _wait_until(lambda: display.text == "uno")
        second_outcome = await controller.request_suggestion(TARGET_REQUEST)
        first.resume.set()
        first_outcome = await first_task
        return first_outcome, second_outcome

    first_outcome, second_outcome = asyncio.run(_run())

    assert first_outcome.state is SessionState.CANCELLED
    assert second_outcome.state is SessionState.COMPLETED
    assert second_outcome.session_id > first_outcome.session_id
    assert display.text == "final"
    assert first.closed == 1


def test_cancel_stops_session_in_flight(vault, settings_store) -> None:
    source = MockCompletionSource(["uno", "dos"], pause_after=1)
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    async def _run():
        task = asyncio.create_task(controller.request_suggestion(TARGET_REQUEST))
        await _wait_until(lambda: display.text == "uno")
        assert controller.cancel()
        return await asyncio.wait_for(task, timeout=2)

    outcome = asyncio.run(_run())

    assert outcome.state is SessionState.CANCELLED
    assert outcome.text is None
    assert controller.current_session.state is SessionState.CANCELLED
    assert source.closed == 1


def test_task_cancellation_cancels_session(vault, settings_store) -> None:
    source = MockCompletionSource(["uno", "dos"], pause_after=1)
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, source, display)

    async def _run() -> None:
        task = asyncio.create_task(controller.request_suggestion(TARGET_REQUEST))
        await _wait_until(lambda: display.text == "uno")
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_run())

    assert controller.current_session.state is SessionState.CANCELLED
    assert source.closed == 1


def test_close_clears_display_and_detaches(vault, settings_store) -> None:
    display = BufferedDisplay()
    controller = _controller(vault, settings_store, MockCompletionSource(["Mundo"]), display)
    asyncio.run(controller.request_suggestion(TARGET_REQUEST))

    controller.close()

    assert display.status is DisplayStatus.IDLE
    assert controller.display is None
    outcome = asyncio.run(controller.request_suggestion(TARGET_REQUEST))
    assert outcome.message == NO_SIDEBAR_MESSAGE


def test_service_sidebars_are_reused_until_closed(vault, settings_store) -> None:
    service = SuggestionService(
        vault=vault,
        settings_store=settings_store,
        completion_source=MockCompletionSource(),
    )

    sidebar = service.open_sidebar("main")

    assert service.open_sidebar("main") is sidebar
    assert service.get_sidebar("main") is sidebar
    assert service.close_sidebar("main")
    assert service.get_sidebar("main") is None
    assert not service.close_sidebar("main")


def _event_kind(chunk: str) -> str:
    return chunk.split("\n", 1)[0][len("event: "):]


def test_disconnecting_client_does_not_cancel_newer_suggestion(vault, settings_store) -> None:
    first = MockCompletionSource(["uno", "dos"], pause_after=1)
    second = MockCompletionSource(["fin", "al"])
    service = SuggestionService(
        vault=vault,
        settings_store=settings_store,
        completion_source=SequencedSource(first, second),
    )
    sidebar = service.open_sidebar("main")

    async def _run():
        first_queue, first_task = start_suggestion(sidebar, TARGET_REQUEST)
        first_events = _event_stream(first_queue, first_task)
        first_kinds = [_event_kind(await first_events.__anext__()) for _ in range(3)]

        second_queue, second_task = start_suggestion(sidebar, TARGET_REQUEST)
        await asyncio.sleep(0)
        # The second session has begun; the first client goes away before its task settles.
        assert not first_task.done()
        await first_events.aclose()
        await asyncio.wait([first_task])

        second_outcome = await asyncio.wait_for(second_task, timeout=2)
        second_kinds = [_event_kind(chunk) async for chunk in _event_stream(second_queue, second_task)]
        return first_kinds, second_outcome, second_kinds

    first_kinds, second_outcome, second_kinds = asyncio.run(_run())

    assert first_kinds == ["clear", "loading", "fragment"]
    assert second_outcome.state is SessionState.COMPLETED
    assert second_kinds == ["clear", "loading", "fragment", "fragment", "final", "outcome"]
    assert sidebar.display.text == "final"
    assert sidebar.controller.current_session.state is SessionState.COMPLETED
