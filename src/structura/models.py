"""Model capability registry.

Two immutable sets: models whose provider integration enforces a JSON schema
on output, and the full set of models callers may name as primary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from structura.errors import ConfigurationError, ModelNotAllowedError

if TYPE_CHECKING:
    from collections.abc import Sequence

STRUCTURED_OUTPUT_MODELS: frozenset[str] = frozenset(
    {
        "deepseek/deepseek-chat-v3-0324",
        "google/gemini-2.0-flash-001",
        "google/gemini-2.5-flash-lite-preview-06-17",
        "google/gemini-2.5-flash",
        "google/gemini-2.5-pro",
        "google/gemini-3-flash-preview",
        "openai/gpt-5",
        "openai/gpt-4o-mini",
        "openai/gpt-4.1",
        "openai/gpt-4o",
    }
)

ALLOWED_MODELS: frozenset[str] = STRUCTURED_OUTPUT_MODELS | frozenset(
    {
        "anthropic/claude-3.5-sonnet",
        "anthropic/claude-3.5-sonnet-20240620",
        "anthropic/claude-3.5-haiku",
        "anthropic/claude-3.7-sonnet",
        "nousresearch/hermes-4-70b",
    }
)

#: Ranked list used when a caller names no models.
DEFAULT_MODELS: tuple[str, ...] = (
    "google/gemini-2.5-flash",
    "deepseek/deepseek-chat-v3-0324",
)


def is_allowed(model: str) -> bool:
    """Return True when *model* may be used as a primary model."""
    return model in ALLOWED_MODELS


def supports_native_schema(model: str) -> bool:
    """Return True when the provider enforces a JSON schema for *model*."""
    return model in STRUCTURED_OUTPUT_MODELS


def require_allowed(models: Sequence[str]) -> tuple[str, ...]:
    """Validate a ranked model list and return it as a tuple.

    Only the primary (first) model is checked; fallbacks are passed through to
    the provider's own routing as given.
    """
    ranked = tuple(models)
    if not ranked:
        raise ConfigurationError(
            "models must name at least one model",
            hint=f"Pass models={list(DEFAULT_MODELS)!r} or omit it.",
        )
    primary = ranked[0]
    if not isinstance(primary, str) or not is_allowed(primary):
        raise ModelNotAllowedError(primary)
    return ranked
