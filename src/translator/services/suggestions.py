from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from translator.config import AppConfig, SettingsStore, load_app_config
from translator.display import DisplaySurface, EventStreamDisplay
from translator.documents import Alignment, Position, align
from translator.errors import (
    ConfigurationMissingError,
    DisplayUnavailableError,
    NoActiveDocumentError,
    SourceUnresolvedError,
    TranslatorError,
)
from translator.llm import CompletionSource, abortable, build_completion_source
from translator.logging_config import AUDIT_LOGGER_NAME
from translator.prompt_builder import DEFAULT_MODE, PromptPayload, compose
from translator.streaming import ResponseAssembler, SessionState, StreamSession
from translator.telemetry import (
    emit_alignment_event,
    emit_completion_request,
    emit_completion_result,
    emit_exception,
    traced_duration,
)
from translator.vault import Vault

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

NO_SIDEBAR_MESSAGE = "Open the translator sidebar first."
NO_ACTIVE_FILE_MESSAGE = "No active file in editor."
NO_SOURCE_MESSAGE = "No source file selected in the translator settings."
MISSING_KEY_MESSAGE = "Missing Anthropic API key. Set it in the translator settings."
SOURCE_NOT_FOUND_MESSAGE = "Selected source file not found in the vault."


@dataclass(frozen=True, slots=True)
class SuggestionRequest:
    """What the editor knows when the user asks for a suggestion."""

    cursor: Position
    active_path: Optional[str] = None
    active_text: Optional[str] = None
    mode: str = DEFAULT_MODE


@dataclass(slots=True)
class SuggestionOutcome:
    """How a request settled; ``message`` is meant for the user."""

    state: SessionState
    message: Optional[str] = None
    text: Optional[str] = None
    session_id: Optional[int] = None
    english_line: Optional[str] = None
    error: Optional[str] = None


class SuggestionController:
    """Run suggestion sessions for one display surface.

    Only the newest session may write to the display. Starting a request
    cancels the one in flight, and every failure is turned into a
    :class:`SuggestionOutcome` instead of an exception.
    """

    def __init__(
        self,
        *,
        vault: Vault,
        settings_store: SettingsStore,
        completion_source: CompletionSource,
        display: Optional[DisplaySurface] = None,
        sidebar_id: Optional[str] = None,
    ) -> None:
        self._vault = vault
        self._settings_store = settings_store
        self._source = completion_source
        self._assembler = ResponseAssembler(display) if display is not None else None
        self.sidebar_id = sidebar_id

    @property
    def display(self) -> Optional[DisplaySurface]:
        return self._assembler.display if self._assembler is not None else None

    @property
    def current_session(self) -> Optional[StreamSession]:
        return self._assembler.current if self._assembler is not None else None

    def attach_display(self, display: DisplaySurface) -> None:
        self.close()
        self._assembler = ResponseAssembler(display)

    def cancel(self) -> bool:
        if self._assembler is None:
            return False
        return self._assembler.cancel()

    def close(self) -> None:
        """Detach the display, cancelling the session in flight."""

        if self._assembler is None:
            return
        self._assembler.cancel()
        self._assembler.display.clear()
        self._assembler = None

    async def request_suggestion(
        self,
        request: SuggestionRequest,
        *,
        on_begin: Optional[Callable[[], None]] = None,
    ) -> SuggestionOutcome:
        """Run one suggestion session; ``on_begin`` is passed to the assembler."""

        try:
            assembler = self._require_display()
            target_text = self._read_active_document(request)
            credential, source_path = self._require_configuration()
            source_text = self._read_source(source_path)
            alignment = align(target_text, request.cursor, source_text)
            emit_alignment_event(
                cursor_line=request.cursor.line,
                target_offset=alignment.target_offset,
                body_index=alignment.body_index,
                source_lines=alignment.source_line_count,
                end_of_source=alignment.end_of_source,
            )
            payload = compose(alignment.english_line, alignment.context, request.mode)
        except TranslatorError as error:
            LOGGER.info("Suggestion request rejected: %s", error)
            return SuggestionOutcome(
                state=SessionState.FAILED,
                message=error.user_message,
                error=type(error).__name__,
            )
        except Exception as error:
            emit_exception(module=__name__, error=error, sidebar_id=self.sidebar_id)
            return SuggestionOutcome(
                state=SessionState.FAILED,
                message=f"Unexpected error: {error}",
                error=type(error).__name__,
            )

        session = assembler.begin(on_begin)
        return await self._run_session(assembler, session, payload, credential, alignment)

    def _require_display(self) -> ResponseAssembler:
        if self._assembler is None:
            raise DisplayUnavailableError(NO_SIDEBAR_MESSAGE)
        return self._assembler

    def _read_active_document(self, request: SuggestionRequest) -> str:
        if request.active_text is not None:
            return request.active_text
        if not request.active_path:
            raise NoActiveDocumentError(NO_ACTIVE_FILE_MESSAGE)
        try:
            with traced_duration("document.read", logger=LOGGER, path=request.active_path):
                return self._vault.read(request.active_path)
        except (OSError, UnicodeDecodeError) as error:
            raise NoActiveDocumentError(
                f"Active file '{request.active_path}' could not be read.", cause=error
            ) from error

    def _require_configuration(self) -> tuple[str, str]:
        settings = self._settings_store.settings
        if not settings.source_file_path:
            raise ConfigurationMissingError(NO_SOURCE_MESSAGE)
        credential = settings.resolve_credential()
        if self._source.requires_credential and not credential:
            raise ConfigurationMissingError(MISSING_KEY_MESSAGE)
        return credential, settings.source_file_path

    def _read_source(self, source_path: str) -> str:
        if self._vault.resolve(source_path) is None:
            raise SourceUnresolvedError(SOURCE_NOT_FOUND_MESSAGE)
        try:
            with traced_duration("document.read", logger=LOGGER, path=source_path):
                return self._vault.read(source_path)
        except (OSError, UnicodeDecodeError) as error:
            raise SourceUnresolvedError(SOURCE_NOT_FOUND_MESSAGE, cause=error) from error

    async def _run_session(
        self,
        assembler: ResponseAssembler,
        session: StreamSession,
        payload: PromptPayload,
        credential: str,
        alignment: Alignment,
    ) -> SuggestionOutcome:
        emit_completion_request(
            session_id=session.session_id,
            sidebar_id=self.sidebar_id,
            source=self._source.name,
            prompt_len=len(payload.system) + len(payload.user),
        )
        outcome = SuggestionOutcome(
            state=SessionState.CANCELLED,
            session_id=session.session_id,
            english_line=alignment.english_line,
        )
        try:
            async with self._source.stream(credential, payload, signal=session.signal) as stream:
                async with aclosing(abortable(stream, session.signal)) as fragments:
                    async for fragment in fragments:
                        if not assembler.append(session, fragment):
                            break
                if assembler.is_current(session) and stream.exhausted:
                    final_text = stream.final_text
                    assembler.finalize(session, final_text)
                    outcome.state = SessionState.COMPLETED
                    outcome.text = final_text
        except asyncio.CancelledError:
            assembler.cancel(session)
            raise
        except TranslatorError as error:
            emit_exception(
                module=f"{__name__}.stream",
                error=error,
                session_id=session.session_id,
                sidebar_id=self.sidebar_id,
            )
            if assembler.fail(session, error.user_message):
                outcome.state = SessionState.FAILED
                outcome.message = error.user_message
                outcome.error = type(error).__name__
        except Exception as error:
            emit_exception(
                module=f"{__name__}.stream",
                error=error,
                session_id=session.session_id,
                sidebar_id=self.sidebar_id,
            )
            message = f"Unexpected error: {error}"
            if assembler.fail(session, message):
                outcome.state = SessionState.FAILED
                outcome.message = message
                outcome.error = type(error).__name__

        emit_completion_result(
            session_id=session.session_id,
            sidebar_id=self.sidebar_id,
            state=outcome.state.value,
            duration_ms=(time.perf_counter() - session.started_at) * 1000.0,
            fragments=len(session.fragments),
            answer_preview=outcome.text or "",
        )
        AUDIT_LOGGER.info(
            {
                "event": "suggestion",
                "sidebar_id": self.sidebar_id,
                "session_id": session.session_id,
                "state": outcome.state.value,
                "body_index": alignment.body_index,
            }
        )
        return outcome


@dataclass(slots=True)
class Sidebar:
    """An open sidebar: its display plus the controller writing to it."""

    sidebar_id: str
    display: EventStreamDisplay
    controller: SuggestionController


class SuggestionService:
    """Shared collaborators and the sidebars currently open."""

    def __init__(
        self,
        *,
        vault: Vault,
        settings_store: SettingsStore,
        completion_source: CompletionSource,
    ) -> None:
        self.vault = vault
        self.settings_store = settings_store
        self.completion_source = completion_source
        self._sidebars: Dict[str, Sidebar] = {}

    @classmethod
    def from_config(cls, config: AppConfig) -> "SuggestionService":
        settings_store = SettingsStore(config.settings_file)
        settings_store.load()
        return cls(
            vault=Vault(config.vault_dir),
            settings_store=settings_store,
            completion_source=build_completion_source(config),
        )

    def open_sidebar(self, sidebar_id: str) -> Sidebar:
        existing = self._sidebars.get(sidebar_id)
        if existing is not None:
            return existing
        display = EventStreamDisplay()
        controller = SuggestionController(
            vault=self.vault,
            settings_store=self.settings_store,
            completion_source=self.completion_source,
            display=display,
            sidebar_id=sidebar_id,
        )
        sidebar = Sidebar(sidebar_id=sidebar_id, display=display, controller=controller)
        self._sidebars[sidebar_id] = sidebar
        LOGGER.info("Opened sidebar %s", sidebar_id)
        return sidebar

    def get_sidebar(self, sidebar_id: str) -> Optional[Sidebar]:
        return self._sidebars.get(sidebar_id)

    def close_sidebar(self, sidebar_id: str) -> bool:
        sidebar = self._sidebars.pop(sidebar_id, None)
        if sidebar is None:
            return False
        sidebar.controller.close()
        LOGGER.info("Closed sidebar %s", sidebar_id)
        return True


_suggestion_service: Optional[SuggestionService] = None


def get_suggestion_service() -> SuggestionService:
    """FastAPI dependency returning the shared :class:`SuggestionService` instance."""

    global _suggestion_service

    if _suggestion_service is None:
        _suggestion_service = SuggestionService.from_config(load_app_config())
    return _suggestion_service
