"""Select the completion source configured for this process."""

from __future__ import annotations

import logging

from translator.config import AppConfig

from .anthropic import AnthropicCompletionSource
from .base import CompletionSource
from .mock import MockCompletionSource

LOGGER = logging.getLogger(__name__)


def build_completion_source(config: AppConfig) -> CompletionSource:
    if config.use_stub:
        LOGGER.warning("LLM_STUB flag enabled; using scripted mock completions.")
        return MockCompletionSource()
    return AnthropicCompletionSource(
        model=config.anthropic_model,
        max_tokens=config.anthropic_max_tokens,
        base_url=config.anthropic_base_url,
        timeout=config.anthropic_timeout,
    )


__all__ = ["build_completion_source"]
