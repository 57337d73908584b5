"""Per-call inference options."""

from __future__ import annotations

from dataclasses import dataclass

from structura.errors import ConfigurationError
from structura.models import DEFAULT_MODELS


@dataclass(frozen=True)
class InferenceOptions:
    """Decoding and retry settings for one inference call."""

    #: Ranked model list: primary first, the rest are provider-side fallbacks.
    models: tuple[str, ...] = DEFAULT_MODELS
    max_tokens: int = 4096
    temperature: float = 1.0
    #: Upper bound on request/parse/validate cycles for structured calls.
    max_attempts: int = 3

    def __post_init__(self) -> None:
        """Validate option shapes early for clear errors."""
        if isinstance(self.models, str) or not isinstance(
            self.models, (list, tuple)
        ):
            raise ConfigurationError(
                "models must be a list or tuple of model identifiers",
                hint="Pass models=('google/gemini-2.5-flash',).",
            )
        object.__setattr__(self, "models", tuple(self.models))
        if not self.models:
            raise ConfigurationError(
                "models must name at least one model",
                hint="Omit models to use the defaults.",
            )

        if (
            isinstance(self.max_tokens, bool)
            or not isinstance(self.max_tokens, int)
            or self.max_tokens <= 0
        ):
            raise ConfigurationError(
                "max_tokens must be a positive integer",
                hint="Pass max_tokens=4096 or similar.",
            )
        if (
            isinstance(self.max_attempts, bool)
            or not isinstance(self.max_attempts, int)
            or self.max_attempts < 1
        ):
            raise ConfigurationError(
                f"max_attempts must be >= 1, got {self.max_attempts!r}",
                hint="This bounds how many times a structured call is retried.",
            )
        if isinstance(self.temperature, bool) or not isinstance(
            self.temperature, (int, float)
        ):
            raise ConfigurationError(
                f"temperature must be a number, got {self.temperature!r}",
                hint="Pass temperature=0.7 or similar.",
            )
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be within [0, 2], got {self.temperature}",
            )

    @property
    def primary_model(self) -> str:
        return self.models[0]
