"""Exception hierarchy for Structura."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from structura.types import ResponseMessage


class StructuraError(Exception):
    """Base exception for all Structura errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(StructuraError):
    """Configuration, options, or conversation validation failed."""


class ModelNotAllowedError(ConfigurationError):
    """The primary model is not in the known model set.

    Raised before any network I/O and never retried.
    """

    def __init__(self, model: str | None, *, hint: str | None = None) -> None:
        super().__init__(
            f"Model not allowed: {model!r}",
            hint=hint or "Pick a model from structura.models.ALLOWED_MODELS.",
        )
        self.model = model


class MissingCredentialError(ConfigurationError):
    """No provider API key is configured."""


class ProviderError(StructuraError):
    """The provider call failed.

    Covers non-success HTTP statuses, transport failures, and response bodies
    that do not have the chat-completions shape. ``status_code`` is ``None``
    when no HTTP response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = "openrouter",
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider


class RateLimitError(ProviderError):
    """Rate limit exceeded (HTTP 429)."""


class StructuredOutputError(StructuraError):
    """One attempt produced content that failed to parse or validate.

    The inference loop catches this and retries; callers only see it as the
    ``__cause__`` of :class:`InferenceExhaustedError`.
    """

    def __init__(
        self, message: str, *, raw: str | None = None, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.raw = raw


class InferenceExhaustedError(StructuraError):
    """Every attempt failed to produce a schema-conformant result."""

    def __init__(
        self,
        attempts: int,
        last_response: list[ResponseMessage] | None = None,
        *,
        hint: str | None = None,
    ) -> None:
        super().__init__(
            f"Exhausted inference validation after {attempts} attempt(s)",
            hint=hint
            or "Raise max_attempts or use a model that supports structured outputs.",
        )
        self.attempts = attempts
        self.last_response = last_response
