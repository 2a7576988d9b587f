"""Suggestion session orchestration."""

from .suggestions import (
    Sidebar,
    SuggestionController,
    SuggestionOutcome,
    SuggestionRequest,
    SuggestionService,
    get_suggestion_service,
)

__all__ = [
    "Sidebar",
    "SuggestionController",
    "SuggestionOutcome",
    "SuggestionRequest",
    "SuggestionService",
    "get_suggestion_service",
]
