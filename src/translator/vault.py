"""Read-only access to the documents of a vault directory."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Final, List, Optional

DOCUMENT_SUFFIXES: Final[frozenset[str]] = frozenset({".md", ".mdx"})

LOGGER = logging.getLogger(__name__)


class Vault:
    """Resolve and read documents relative to a root directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def resolve(self, path: str | None) -> Optional[Path]:
        """Return the file for ``path`` or ``None`` when it is missing or outside the vault."""
        if not path or not path.strip():
            return None
        candidate = (self.root / path.strip()).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            LOGGER.warning("Rejected path outside the vault: %s", path)
            return None
        if not candidate.is_file():
            return None
        return candidate

    def read(self, path: str) -> str:
        resolved = self.resolve(path)
        if resolved is None:
            raise FileNotFoundError(path)
        return resolved.read_text(encoding="utf-8")

    def list_documents(self) -> List[str]:
        """Markdown documents in the vault, as sorted vault-relative paths."""
        if not self.root.is_dir():
            return []
        documents = [
            entry.relative_to(self.root).as_posix()
            for entry in self.root.rglob("*")
            if entry.is_file() and entry.suffix.lower() in DOCUMENT_SUFFIXES
        ]
        return sorted(documents)


__all__ = ["DOCUMENT_SUFFIXES", "Vault"]
