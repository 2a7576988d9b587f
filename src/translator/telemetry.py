"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import time
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("translator.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "TRANSLATOR_VAULT_DIR",
    "TRANSLATOR_SETTINGS_FILE",
    "ANTHROPIC_MODEL",
    "ANTHROPIC_MAX_TOKENS",
    "ANTHROPIC_BASE_URL",
    "ANTHROPIC_TIMEOUT",
    "LLM_STUB",
    "LOG_LEVEL",
    "TRANSLATOR_LOG_DIR",
)

_PREVIEW_CHARS = 120


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    session_id: int | str | None = None,
    sidebar_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if session_id is not None:
        event["session_id"] = session_id
    if sidebar_id:
        event["sidebar_id"] = sidebar_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    payload = {
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
        "cwd": str(Path.cwd()),
    }
    log_event(LOGGER, "app.startup", details=details, extra=payload)


def emit_settings_event(step: str, *, path: str, has_api_key: bool, source_file_path: str | None) -> None:
    details = {
        "path": path,
        "has_api_key": has_api_key,
        "source_file_path": source_file_path,
    }
    log_event(LOGGER, step, details=details)


def emit_alignment_event(
    *,
    cursor_line: int,
    target_offset: int,
    body_index: int,
    source_lines: int,
    end_of_source: bool,
) -> None:
    details = {
        "cursor_line": cursor_line,
        "target_offset": target_offset,
        "body_index": body_index,
        "source_lines": source_lines,
        "end_of_source": end_of_source,
    }
    log_event(LOGGER, "document.align", details=details)


def emit_prompt_event(*, mode: str, system_prompt: str, user_prompt: str) -> None:
    details = {
        "mode": mode,
        "system_prompt_preview": system_prompt[:_PREVIEW_CHARS],
        "user_prompt_len": len(user_prompt),
    }
    log_event(LOGGER, "prompt.compose", details=details)


def emit_completion_request(
    *,
    session_id: int,
    sidebar_id: str | None,
    source: str,
    prompt_len: int,
) -> None:
    details = {"source": source, "prompt_len": prompt_len}
    log_event(
        LOGGER,
        "completion.request",
        session_id=session_id,
        sidebar_id=sidebar_id,
        details=details,
    )


def emit_completion_result(
    *,
    session_id: int,
    sidebar_id: str | None,
    state: str,
    duration_ms: float,
    fragments: int,
    answer_preview: str,
) -> None:
    details = {
        "state": state,
        "fragments": fragments,
        "answer_preview": answer_preview[:_PREVIEW_CHARS],
    }
    log_event(
        LOGGER,
        "completion.result",
        session_id=session_id,
        sidebar_id=sidebar_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_session_transition(*, session_id: int, previous: str, current: str) -> None:
    log_event(
        LOGGER,
        "session.transition",
        level="debug",
        session_id=session_id,
        details={"from": previous, "to": current},
    )


def emit_exception(
    *,
    module: str,
    error: BaseException,
    session_id: int | None = None,
    sidebar_id: str | None = None,
) -> None:
    details = {"module": module}
    log_event(
        LOGGER,
        "exception",
        level="error",
        session_id=session_id,
        sidebar_id=sidebar_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", level="debug", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            level="debug",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


__all__ = [
    "emit_alignment_event",
    "emit_app_startup_event",
    "emit_completion_request",
    "emit_completion_result",
    "emit_exception",
    "emit_prompt_event",
    "emit_session_transition",
    "emit_settings_event",
    "log_event",
    "traced_duration",
]
