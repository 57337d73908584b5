"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off gateway classes as coverage expands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

import httpx

from structura.types import ResponseMessage


def reply(content: str | None) -> list[ResponseMessage]:
    """Return a single-candidate gateway response."""
    return [ResponseMessage(role="assistant", content=content)]


def json_reply(payload: dict[str, Any]) -> list[ResponseMessage]:
    return reply(json.dumps(payload))


@dataclass
class ScriptedGateway:
    """Gateway double that returns a scripted sequence of results/exceptions.

    Records every ``complete()`` call so tests can assert on attempt counts and
    on exactly what was sent.
    """

    script: list[list[ResponseMessage] | BaseException] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def complete(
        self,
        conversation,
        *,
        models,
        max_tokens,
        temperature,
        response_schema=None,
    ) -> list[ResponseMessage]:
        self.calls.append(
            {
                "conversation": tuple(conversation),
                "models": tuple(models),
                "max_tokens": max_tokens,
                "temperature": temperature,
                "response_schema": response_schema,
            }
        )
        if not self.script:
            raise AssertionError("ScriptedGateway script exhausted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@dataclass
class RecordingTransport:
    """httpx MockTransport wrapper that records requests and replays responses."""

    responses: list[httpx.Response] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("RecordingTransport has no response queued")
        return self.responses.pop(0)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def completion_body(*contents: str | None, **extra: Any) -> dict[str, Any]:
    """Build a chat-completions response body with one choice per content."""
    body: dict[str, Any] = {
        "id": "gen-test",
        "model": "google/gemini-2.5-flash",
        "object": "chat.completion",
        "created": 0,
        "choices": [
            {
                "finish_reason": "stop",
                "native_finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
            for content in contents
        ],
    }
    body.update(extra)
    return body
