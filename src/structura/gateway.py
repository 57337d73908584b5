"""OpenRouter chat-completions gateway.

One request per call. Retrying is the inference engine's job; fallback
routing across models happens on the provider side via the ``models`` field.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from structura.config import Config
from structura.errors import MissingCredentialError, ProviderError, RateLimitError
from structura.models import require_allowed
from structura.types import ResponseMessage, ToolCall

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from structura.types import Message

logger = logging.getLogger(__name__)


@runtime_checkable
class ChatGateway(Protocol):
    """Minimal gateway protocol: one completion round trip per call."""

    async def complete(
        self,
        conversation: Sequence[Message],
        *,
        models: Sequence[str],
        max_tokens: int,
        temperature: float,
        response_schema: dict[str, Any] | None = None,
    ) -> list[ResponseMessage]:
        """Return the candidate messages for one request."""
        ...


class OpenRouterGateway:
    """Async client for the OpenRouter ``/chat/completions`` endpoint."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize with a config; *transport* overrides the httpx transport."""
        self.config = config or Config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=str(self.config.base_url),
                timeout=self.config.timeout_s,
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        if self.config.referer:
            headers["HTTP-Referer"] = self.config.referer
        if self.config.title:
            headers["X-Title"] = self.config.title
        return headers

    async def complete(
        self,
        conversation: Sequence[Message],
        *,
        models: Sequence[str],
        max_tokens: int,
        temperature: float,
        response_schema: dict[str, Any] | None = None,
    ) -> list[ResponseMessage]:
        """Send one chat completion and return every candidate message.

        Args:
            conversation: Messages in order.
            models: Ranked models; the first is primary, the rest fallbacks.
            max_tokens: Output token limit.
            temperature: Sampling temperature.
            response_schema: Wire JSON Schema to enforce as a strict output
                format. Only meaningful for schema-native models.

        Raises:
            ModelNotAllowedError: The primary model is unknown.
            MissingCredentialError: No API key is configured.
            ProviderError: The request failed or the body is malformed.
        """
        ranked = require_allowed(models)
        if not self.config.api_key:
            raise MissingCredentialError(
                "OpenRouter API key is not set",
                hint=f"Set {self.config.api_key_env_var} or pass Config(api_key=...).",
            )

        body = build_request_body(
            conversation,
            models=ranked,
            max_tokens=max_tokens,
            temperature=temperature,
            response_schema=response_schema,
        )

        logger.debug(
            "Dispatching chat completion: model=%s fallbacks=%d messages=%d schema=%s",
            ranked[0],
            len(ranked) - 1,
            len(body["messages"]),
            response_schema is not None,
        )
        client = self._get_client()
        try:
            response = await client.post(
                "/chat/completions", json=body, headers=self._headers()
            )
        except asyncio.CancelledError:
            raise
        except httpx.HTTPError as e:
            raise ProviderError(
                f"OpenRouter request failed: {e}",
                hint="Check network connectivity and OPENROUTER_BASE_URL.",
            ) from e

        if not response.is_success:
            raise _status_error(response)

        return parse_response_body(_json_body(response))

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.aclose()

    async def __aenter__(self) -> OpenRouterGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def build_request_body(
    conversation: Sequence[Message],
    *,
    models: Sequence[str],
    max_tokens: int,
    temperature: float,
    response_schema: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the chat-completions JSON body."""
    body: dict[str, Any] = {
        "model": models[0],
        "models": list(models[1:]),
        "messages": [message.to_wire() for message in conversation],
        "temperature": temperature,
        "max_tokens": max_tokens,
        "stream": False,
        "reasoning": {"exclude": True},
    }
    if response_schema is not None:
        body["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": "response",
                "schema": response_schema,
                "strict": True,
            },
        }
    return body


def parse_response_body(payload: Any) -> list[ResponseMessage]:
    """Extract candidate messages from a chat-completions response body."""
    if not isinstance(payload, dict):
        raise ProviderError("OpenRouter returned a non-object response body")

    error = payload.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        raise ProviderError(
            f"OpenRouter returned an error: {error.get('message', 'unknown error')}",
            status_code=code if isinstance(code, int) else None,
        )

    choices = payload.get("choices")
    if not isinstance(choices, list):
        raise ProviderError("OpenRouter response is missing 'choices'")

    usage = payload.get("usage")
    if isinstance(usage, dict):
        logger.debug(
            "Chat completion usage: model=%s prompt_tokens=%s completion_tokens=%s",
            payload.get("model"),
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )

    messages: list[ResponseMessage] = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        message = choice.get("message")
        if not isinstance(message, dict):
            continue
        content = message.get("content")
        messages.append(
            ResponseMessage(
                role=str(message.get("role") or "assistant"),
                content=content if isinstance(content, str) else None,
                tool_calls=_parse_tool_calls(message.get("tool_calls")),
                finish_reason=choice.get("finish_reason"),
            )
        )
    return messages


def _parse_tool_calls(raw: Any) -> tuple[ToolCall, ...] | None:
    if not isinstance(raw, list) or not raw:
        return None
    calls: list[ToolCall] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        function = item.get("function") or {}
        calls.append(
            ToolCall(
                id=str(item.get("id", "")),
                name=str(function.get("name", "")),
                arguments=function.get("arguments") or "{}",
            )
        )
    return tuple(calls) or None


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(
            "OpenRouter returned a body that is not JSON",
            status_code=response.status_code,
        ) from e


def _status_error(response: httpx.Response) -> ProviderError:
    status_code = response.status_code
    hint: str | None = None
    if status_code in {401, 403}:
        hint = "Check credentials/permissions (try setting OPENROUTER_API_KEY)."
    err_cls: type[ProviderError] = RateLimitError if status_code == 429 else ProviderError
    return err_cls(
        f"OpenRouter API returned status {status_code}: {response.reason_phrase}",
        hint=hint,
        status_code=status_code,
    )
