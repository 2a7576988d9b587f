"""Utilities for constructing prompts for the translation tutor."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from translator.telemetry import emit_prompt_event

_PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
_SYSTEM_PROMPT_PATH = _PROMPTS_DIR / "system.txt"
_USER_PROMPT_PATH = _PROMPTS_DIR / "user.md"

PROMPT_MODES: frozenset[str] = frozenset({"general", "words"})
DEFAULT_MODE = "general"


def _load_template(path: Path) -> str:
    """Read and trim the contents of a template file."""
    return path.read_text(encoding="utf-8").strip()


_SYSTEM_TEXT = _load_template(_SYSTEM_PROMPT_PATH)
_USER_TEMPLATE = _load_template(_USER_PROMPT_PATH)


@dataclass(frozen=True, slots=True)
class PromptPayload:
    """System and user instructions sent to the remote model."""

    system: str
    user: str

    def combined(self) -> str:
        """Single-instruction form for backends without a separate system slot."""
        return f"{self.system}\n\n{self.user}"


def compose(english_line: str, context: str, mode: str = DEFAULT_MODE) -> PromptPayload:
    """Compose the instructions for one suggestion request.

    ``mode`` is validated but both modes currently share the same wording.
    """

    if mode not in PROMPT_MODES:
        raise ValueError(f"Unsupported prompt mode: {mode!r}")

    user_text = _USER_TEMPLATE.format(
        source_line=english_line,
        progress=context,
    )
    payload = PromptPayload(system=_SYSTEM_TEXT, user=user_text)
    emit_prompt_event(mode=mode, system_prompt=payload.system, user_prompt=payload.user)
    return payload


__all__ = ["DEFAULT_MODE", "PROMPT_MODES", "PromptPayload", "compose"]
