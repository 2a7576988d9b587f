"""Remote completion sources."""

from .anthropic import AnthropicCompletionSource
from .base import CompletionSource, CompletionStream, abortable
from .mock import MockCompletionSource
from .provider import build_completion_source

__all__ = [
    "AnthropicCompletionSource",
    "CompletionSource",
    "CompletionStream",
    "MockCompletionSource",
    "abortable",
    "build_completion_source",
]
