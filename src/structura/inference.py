"""Structured inference: bounded retries until the model returns a valid value.

Two entry points replace one overloaded call:

- :func:`infer_raw` sends one request and returns the candidate messages.
- :func:`infer_structured` attaches a schema (natively or in-band), repairs,
  parses and validates the first candidate, and retries on content failures.

Configuration and provider errors abort the call immediately; only
parse/validation failures consume retry attempts.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from structura.errors import InferenceExhaustedError, StructuredOutputError
from structura.gateway import OpenRouterGateway
from structura.models import require_allowed, supports_native_schema
from structura.options import InferenceOptions
from structura.repair import DEFAULT_REPAIRS, apply_repairs
from structura.schema import describe_schema, to_wire_schema, validate_payload
from structura.types import Message, normalize_conversation

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Sequence

    from structura.gateway import ChatGateway
    from structura.repair import RepairStrategy
    from structura.types import Conversation, ResponseMessage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@asynccontextmanager
async def _gateway_scope(gateway: ChatGateway | None) -> AsyncIterator[ChatGateway]:
    """Yield the caller's gateway, or a fresh one that is closed afterwards."""
    if gateway is not None:
        yield gateway
        return

    owned = OpenRouterGateway()
    try:
        yield owned
    finally:
        try:
            await owned.aclose()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Cleanup should never mask the primary failure.
            logger.warning("Gateway cleanup failed: %s", exc)


def steer_conversation(conversation: Conversation, schema_text: str) -> Conversation:
    """Return a new conversation with the schema appended as a system turn.

    Used for models that do not enforce schemas natively.
    """
    return (*conversation, Message.system(f"Response schema: {schema_text}"))


def extract_structured(
    response: Sequence[ResponseMessage],
    schema: type[ModelT],
    repairs: Sequence[RepairStrategy] = DEFAULT_REPAIRS,
) -> ModelT:
    """Repair, parse and validate the first candidate message.

    Raises:
        StructuredOutputError: If there is no usable content or it does not
            conform to *schema*.
    """
    if not response:
        raise StructuredOutputError("Provider returned no candidate messages")
    content = response[0].content
    if content is None:
        raise StructuredOutputError("First candidate message has no text content")

    text = apply_repairs(content, repairs)
    return validate_payload(schema, text)


async def infer_raw(
    conversation: Iterable[Message | dict[str, Any]],
    *,
    options: InferenceOptions | None = None,
    gateway: ChatGateway | None = None,
) -> list[ResponseMessage]:
    """Send one free-form completion request.

    No schema, no validation, no retry.

    Args:
        conversation: Messages (or wire-shaped dicts) in order.
        options: Models and decoding settings; ``max_attempts`` is ignored.
        gateway: Gateway to use. A default OpenRouter gateway is created and
            closed when omitted.

    Returns:
        Every candidate message the provider returned, in provider order.
    """
    messages = normalize_conversation(conversation)
    opts = options or InferenceOptions()
    require_allowed(opts.models)

    async with _gateway_scope(gateway) as gw:
        return await gw.complete(
            messages,
            models=opts.models,
            max_tokens=opts.max_tokens,
            temperature=opts.temperature,
        )


async def infer_structured(
    conversation: Iterable[Message | dict[str, Any]],
    schema: type[ModelT],
    *,
    options: InferenceOptions | None = None,
    gateway: ChatGateway | None = None,
    repairs: Sequence[RepairStrategy] = DEFAULT_REPAIRS,
) -> ModelT:
    """Request a completion and coerce it into an instance of *schema*.

    Schema-native primary models receive the wire schema as a strict
    ``response_format``. Other models get a system message describing the
    schema appended to a copy of the conversation; the caller's conversation
    is never modified.

    Attempts are strictly sequential and stop at the first valid result.

    Args:
        conversation: Messages (or wire-shaped dicts) in order.
        schema: Pydantic model class describing the expected object.
        options: Models, decoding settings and ``max_attempts``.
        gateway: Gateway to use. A default OpenRouter gateway is created and
            closed when omitted.
        repairs: Text repairs applied to the raw content before parsing.

    Returns:
        A validated instance of *schema*.

    Raises:
        ModelNotAllowedError: The primary model is unknown (no request sent).
        MissingCredentialError: No API key configured (no request sent).
        ProviderError: A request failed; not retried.
        InferenceExhaustedError: ``max_attempts`` requests all produced
            invalid content.
    """
    messages = normalize_conversation(conversation)
    opts = options or InferenceOptions()
    require_allowed(opts.models)

    wire_schema = to_wire_schema(schema)
    native = supports_native_schema(opts.primary_model)
    if native:
        request_messages = messages
    else:
        request_messages = steer_conversation(messages, describe_schema(schema))

    last_response: list[ResponseMessage] | None = None
    last_error: StructuredOutputError | None = None

    async with _gateway_scope(gateway) as gw:
        for attempt in range(1, opts.max_attempts + 1):
            response = await gw.complete(
                request_messages,
                models=opts.models,
                max_tokens=opts.max_tokens,
                temperature=opts.temperature,
                response_schema=wire_schema if native else None,
            )
            last_response = response
            try:
                return extract_structured(response, schema, repairs)
            except StructuredOutputError as exc:
                last_error = exc
                logger.warning(
                    "Unable to validate %s response (attempt %d of %d, model=%s): %s",
                    schema.__name__,
                    attempt,
                    opts.max_attempts,
                    opts.primary_model,
                    exc,
                )

    raise InferenceExhaustedError(opts.max_attempts, last_response) from last_error
