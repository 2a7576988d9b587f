"""Exceptions raised while preparing or running a suggestion session."""
from __future__ import annotations


class TranslatorError(RuntimeError):
    """Base error carrying a message that can be shown to the user."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause

    @property
    def user_message(self) -> str:
        return str(self)


class DisplayUnavailableError(TranslatorError):
    """Raised when no sidebar is open to receive the suggestion."""


class NoActiveDocumentError(TranslatorError):
    """Raised when the editor has no active document."""


class ConfigurationMissingError(TranslatorError):
    """Raised when the API credential or the source document is not configured."""


class SourceUnresolvedError(TranslatorError):
    """Raised when the configured source path does not point at a readable document."""


class CursorInHeaderError(TranslatorError):
    """Raised when the cursor sits inside the metadata header of the target document."""

    def __init__(self, line: int, offset: int) -> None:
        super().__init__("Cursor is inside the document header. Move it to a body line first.")
        self.line = line
        self.offset = offset


class TransportError(TranslatorError):
    """Raised when the remote completion request or its stream fails."""


__all__ = [
    "ConfigurationMissingError",
    "CursorInHeaderError",
    "DisplayUnavailableError",
    "NoActiveDocumentError",
    "SourceUnresolvedError",
    "TranslatorError",
    "TransportError",
]
