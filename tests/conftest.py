"""Shared fixtures for the translation assistant tests."""
from __future__ import annotations

from pathlib import Path

import pytest

from translator.config import SettingsStore
from translator.vault import Vault

SOURCE_TEXT = "---\ntitle: Greeting\n---\nHello\nWorld\n"
TARGET_TEXT = "---\ntitle: Saludo\n---\nHola\n"


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    (root / "notes").mkdir(parents=True)
    (root / "source.md").write_text(SOURCE_TEXT, encoding="utf-8")
    (root / "notes" / "target.md").write_text(TARGET_TEXT, encoding="utf-8")
    return root


@pytest.fixture
def vault(vault_dir: Path) -> Vault:
    return Vault(vault_dir)


@pytest.fixture
def settings_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SettingsStore:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    store = SettingsStore(tmp_path / "settings.json")
    store.load()
    store.update(anthropic_api_key="test-key", source_file_path="source.md")
    return store
