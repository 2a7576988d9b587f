"""Process configuration and the persisted user settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from translator.telemetry import emit_settings_event

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_MAX_TOKENS = 150
DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_TIMEOUT_SECONDS = 60.0


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass(slots=True)
class AppConfig:
    """Settings read from the environment when the service starts."""

    vault_dir: Path
    settings_file: Path
    anthropic_model: str = DEFAULT_MODEL
    anthropic_max_tokens: int = DEFAULT_MAX_TOKENS
    anthropic_base_url: str = DEFAULT_BASE_URL
    anthropic_timeout: float = DEFAULT_TIMEOUT_SECONDS
    use_stub: bool = False


def load_app_config() -> AppConfig:
    max_tokens = _env_int("ANTHROPIC_MAX_TOKENS", DEFAULT_MAX_TOKENS)
    if max_tokens <= 0:
        LOGGER.warning("ANTHROPIC_MAX_TOKENS must be positive; using default %s", DEFAULT_MAX_TOKENS)
        max_tokens = DEFAULT_MAX_TOKENS
    return AppConfig(
        vault_dir=Path(_env_str("TRANSLATOR_VAULT_DIR", ".")),
        settings_file=Path(_env_str("TRANSLATOR_SETTINGS_FILE", "data/settings.json")),
        anthropic_model=_env_str("ANTHROPIC_MODEL", DEFAULT_MODEL),
        anthropic_max_tokens=max_tokens,
        anthropic_base_url=_env_str("ANTHROPIC_BASE_URL", DEFAULT_BASE_URL),
        anthropic_timeout=_env_float("ANTHROPIC_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        use_stub=_env_flag("LLM_STUB"),
    )


class TranslatorSettings(BaseModel):
    """User settings persisted between runs."""

    model_config = ConfigDict(extra="ignore")

    anthropic_api_key: str = ""
    source_file_path: Optional[str] = None

    def resolve_credential(self) -> str:
        """Return the configured API key, falling back to ``ANTHROPIC_API_KEY``."""

        return self.anthropic_api_key.strip() or os.getenv("ANTHROPIC_API_KEY", "").strip()


def _normalise_changes(changes: dict[str, Any]) -> dict[str, Any]:
    normalised = dict(changes)
    if "anthropic_api_key" in normalised:
        normalised["anthropic_api_key"] = (normalised["anthropic_api_key"] or "").strip()
    if "source_file_path" in normalised:
        path = normalised["source_file_path"]
        if isinstance(path, str):
            path = path.strip() or None
        normalised["source_file_path"] = path
    return normalised


class SettingsStore:
    """JSON file holding :class:`TranslatorSettings`, merged over defaults on load."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._settings = TranslatorSettings()

    @property
    def settings(self) -> TranslatorSettings:
        return self._settings

    def load(self) -> TranslatorSettings:
        data: Any = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as error:
                LOGGER.warning("Unable to read settings from %s: %s; using defaults", self.path, error)
                data = {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not contain an object; using defaults", self.path)
            data = {}

        merged = {**TranslatorSettings().model_dump(), **data}
        try:
            self._settings = TranslatorSettings.model_validate(merged)
        except ValidationError as error:
            LOGGER.warning("Invalid settings in %s: %s; using defaults", self.path, error)
            self._settings = TranslatorSettings()

        emit_settings_event(
            "settings.load",
            path=str(self.path),
            has_api_key=bool(self._settings.anthropic_api_key),
            source_file_path=self._settings.source_file_path,
        )
        return self._settings

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._settings.model_dump(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        emit_settings_event(
            "settings.save",
            path=str(self.path),
            has_api_key=bool(self._settings.anthropic_api_key),
            source_file_path=self._settings.source_file_path,
        )

    def update(self, **changes: Any) -> TranslatorSettings:
        """Apply ``changes`` and persist the result immediately."""

        unknown = set(changes) - set(TranslatorSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        merged = {**self._settings.model_dump(), **_normalise_changes(changes)}
        self._settings = TranslatorSettings.model_validate(merged)
        self.save()
        return self._settings


__all__ = [
    "AppConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_MODEL",
    "DEFAULT_TIMEOUT_SECONDS",
    "SettingsStore",
    "TranslatorSettings",
    "load_app_config",
]
