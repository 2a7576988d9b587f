"""Streaming completions from the Anthropic Messages API."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

import anthropic
import httpx

from translator.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT_SECONDS,
)
from translator.errors import ConfigurationMissingError, TransportError
from translator.prompt_builder import PromptPayload

from .base import CompletionSource, CompletionStream

LOGGER = logging.getLogger(__name__)


def _describe_status_error(error: anthropic.APIStatusError) -> str:
    body = error.body if isinstance(error.body, dict) else {}
    detail = body.get("error") if isinstance(body.get("error"), dict) else None
    if detail is None:
        return f"Anthropic API error {error.status_code}: {error.message}"
    kind = detail.get("type", "unknown")
    message = detail.get("message") or "no details"
    # Error events arrive inside a successful streaming response.
    if error.status_code < 400:
        return f"Anthropic stream error ({kind}): {message}"
    return f"Anthropic API error {error.status_code} ({kind}): {message}"


class AnthropicCompletionSource(CompletionSource):
    """Stream the text of a Messages API response.

    A client is built per request so that closing the stream also closes its
    connection. Requests are never retried.
    """

    name = "anthropic"
    requires_credential = True

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def stream(
        self,
        credential: str,
        payload: PromptPayload,
        *,
        signal: Optional[asyncio.Event] = None,
    ) -> CompletionStream:
        if not credential or not credential.strip():
            raise ConfigurationMissingError("Missing Anthropic API key. Set it in the translator settings.")
        del signal  # Aborts are applied by the consumer closing the stream.
        return CompletionStream(self._iter_fragments(credential.strip(), payload))

    def _client(self, credential: str) -> anthropic.AsyncAnthropic:
        http_client = None
        if self._transport is not None:
            http_client = httpx.AsyncClient(transport=self._transport, timeout=self.timeout)
        return anthropic.AsyncAnthropic(
            api_key=credential,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def _iter_fragments(self, credential: str, payload: PromptPayload) -> AsyncIterator[str]:
        client = self._client(credential)
        LOGGER.info("Calling Anthropic API with model %s", self.model)
        try:
            async with client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                system=payload.system,
                messages=[{"role": "user", "content": payload.user}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
                message = await stream.get_final_message()
                if message.stop_reason is None:
                    raise TransportError("Anthropic stream ended before the message was complete")
        except anthropic.APIStatusError as error:
            raise TransportError(_describe_status_error(error), cause=error) from error
        except anthropic.APIConnectionError as error:
            raise TransportError(f"Anthropic request failed: {error}", cause=error) from error
        except anthropic.APIError as error:
            raise TransportError(f"Anthropic stream error: {error.message}", cause=error) from error
        finally:
            await client.close()


__all__ = ["AnthropicCompletionSource"]
