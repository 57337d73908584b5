"""Gateway characterization tests.

These tests pin the exact request/response shapes exchanged with the
chat-completions endpoint using an in-memory httpx transport. No real network
calls are made.
"""

from __future__ import annotations

import httpx
import pytest

from structura.config import Config
from structura.decisions import YesOrNo
from structura.errors import (
    MissingCredentialError,
    ModelNotAllowedError,
    ProviderError,
    RateLimitError,
)
from structura.gateway import (
    ChatGateway,
    OpenRouterGateway,
    build_request_body,
    parse_response_body,
)
from structura.schema import to_wire_schema
from structura.types import Message, ResponseMessage, ToolCall
from tests.helpers import RecordingTransport, completion_body

pytestmark = pytest.mark.contract


def _gateway(recorder: RecordingTransport, **config_kwargs) -> OpenRouterGateway:
    config_kwargs.setdefault("api_key", "test-key")
    return OpenRouterGateway(Config(**config_kwargs), transport=recorder.transport)


# =============================================================================
# Request Shape (Characterization)
# =============================================================================


def test_request_body_without_schema() -> None:
    body = build_request_body(
        (Message.system("sys"), Message.user("hi")),
        models=("google/gemini-2.5-flash", "deepseek/deepseek-chat-v3-0324"),
        max_tokens=128,
        temperature=0.2,
    )

    assert body == {
        "model": "google/gemini-2.5-flash",
        "models": ["deepseek/deepseek-chat-v3-0324"],
        "messages": [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ],
        "temperature": 0.2,
        "max_tokens": 128,
        "stream": False,
        "reasoning": {"exclude": True},
    }


def test_request_body_with_schema_uses_strict_json_schema_format() -> None:
    wire = to_wire_schema(YesOrNo)

    body = build_request_body(
        (Message.user("hi"),),
        models=("openai/gpt-4o",),
        max_tokens=16,
        temperature=1.0,
        response_schema=wire,
    )

    assert body["models"] == []
    assert body["response_format"] == {
        "type": "json_schema",
        "json_schema": {"name": "response", "schema": wire, "strict": True},
    }


@pytest.mark.asyncio
async def test_complete_posts_to_chat_completions_with_auth_headers() -> None:
    recorder = RecordingTransport([httpx.Response(200, json=completion_body("ok"))])
    gateway = _gateway(
        recorder, referer="https://example.com", title="Example", base_url="https://or.test/api/v1"
    )

    async with gateway:
        messages = await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=0.0,
        )

    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://or.test/api/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["HTTP-Referer"] == "https://example.com"
    assert request.headers["X-Title"] == "Example"
    assert recorder.last_json()["model"] == "google/gemini-2.5-flash"
    assert messages == [ResponseMessage(role="assistant", content="ok", finish_reason="stop")]


@pytest.mark.asyncio
async def test_attribution_headers_are_omitted_when_unset() -> None:
    recorder = RecordingTransport([httpx.Response(200, json=completion_body("ok"))])
    gateway = _gateway(recorder)

    await gateway.complete(
        (Message.user("hi"),),
        models=("google/gemini-2.5-flash",),
        max_tokens=32,
        temperature=0.0,
    )
    await gateway.aclose()

    assert "HTTP-Referer" not in recorder.requests[0].headers
    assert "X-Title" not in recorder.requests[0].headers


# =============================================================================
# Local Failures (no request sent)
# =============================================================================


@pytest.mark.asyncio
async def test_unknown_primary_model_fails_before_any_request() -> None:
    recorder = RecordingTransport()
    gateway = _gateway(recorder)

    with pytest.raises(ModelNotAllowedError):
        await gateway.complete(
            (Message.user("hi"),),
            models=("not-a-real-model",),
            max_tokens=32,
            temperature=1.0,
        )

    assert recorder.requests == []


@pytest.mark.asyncio
async def test_missing_credential_fails_before_any_request() -> None:
    recorder = RecordingTransport()
    gateway = OpenRouterGateway(Config(), transport=recorder.transport)

    with pytest.raises(MissingCredentialError) as exc:
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )

    assert recorder.requests == []
    assert exc.value.hint is not None
    assert "OPENROUTER_API_KEY" in exc.value.hint


# =============================================================================
# Provider Error Mapping (Contract)
# =============================================================================


@pytest.mark.asyncio
async def test_non_success_status_maps_to_provider_error() -> None:
    recorder = RecordingTransport([httpx.Response(502, json={"error": "bad gateway"})])
    gateway = _gateway(recorder)

    with pytest.raises(ProviderError) as exc:
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )

    assert exc.value.status_code == 502
    assert "502" in str(exc.value)
    assert "Bad Gateway" in str(exc.value)
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_429_maps_to_rate_limit_error() -> None:
    recorder = RecordingTransport([httpx.Response(429, text="slow down")])
    gateway = _gateway(recorder)

    with pytest.raises(RateLimitError) as exc:
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )
    assert exc.value.status_code == 429


@pytest.mark.asyncio
async def test_auth_failure_carries_credential_hint() -> None:
    recorder = RecordingTransport([httpx.Response(401, json={})])
    gateway = _gateway(recorder)

    with pytest.raises(ProviderError) as exc:
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )
    assert exc.value.hint is not None
    assert "OPENROUTER_API_KEY" in exc.value.hint


@pytest.mark.asyncio
async def test_transport_failure_maps_to_provider_error_without_status() -> None:
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = OpenRouterGateway(
        Config(api_key="test-key"), transport=httpx.MockTransport(_boom)
    )

    with pytest.raises(ProviderError) as exc:
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )
    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_non_json_success_body_maps_to_provider_error() -> None:
    recorder = RecordingTransport([httpx.Response(200, text="<html>oops</html>")])
    gateway = _gateway(recorder)

    with pytest.raises(ProviderError, match="not JSON"):
        await gateway.complete(
            (Message.user("hi"),),
            models=("google/gemini-2.5-flash",),
            max_tokens=32,
            temperature=1.0,
        )


# =============================================================================
# Response Parsing
# =============================================================================


def test_parse_response_returns_every_choice_in_order() -> None:
    messages = parse_response_body(completion_body("first", "second"))

    assert [m.content for m in messages] == ["first", "second"]


def test_parse_response_extracts_tool_calls() -> None:
    body = completion_body(None)
    body["choices"][0]["message"]["tool_calls"] = [
        {
            "id": "call_1",
            "type": "function",
            "function": {"name": "lookup", "arguments": '{"q": "x"}'},
        }
    ]

    [message] = parse_response_body(body)

    assert message.content is None
    assert message.tool_calls == (ToolCall(id="call_1", name="lookup", arguments='{"q": "x"}'),)


def test_parse_response_with_no_choices_is_empty() -> None:
    assert parse_response_body(completion_body()) == []


def test_parse_response_rejects_missing_choices() -> None:
    with pytest.raises(ProviderError, match="choices"):
        parse_response_body({"id": "x"})


def test_parse_response_surfaces_in_body_errors() -> None:
    with pytest.raises(ProviderError, match="upstream overloaded") as exc:
        parse_response_body({"error": {"code": 503, "message": "upstream overloaded"}})
    assert exc.value.status_code == 503


def test_openrouter_gateway_satisfies_protocol() -> None:
    assert isinstance(OpenRouterGateway(Config(api_key="k")), ChatGateway)
