"""Configuration: frozen Config with credentials resolved from the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from structura.errors import ConfigurationError

load_dotenv()

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

_API_KEY_ENV_VAR = "OPENROUTER_API_KEY"
_BASE_URL_ENV_VAR = "OPENROUTER_BASE_URL"
_REFERER_ENV_VAR = "OPENROUTER_REFERER"
_TITLE_ENV_VAR = "OPENROUTER_TITLE"


@dataclass(frozen=True)
class Config:
    """Immutable provider configuration.

    Unset fields are resolved from ``OPENROUTER_*`` environment variables.
    A missing API key is not an error here: the gateway refuses to send a
    request without one, so mock-backed code paths can still build a Config.

    Example:
        config = Config()
        # API key is resolved from OPENROUTER_API_KEY
    """

    #: Auto-resolved from ``OPENROUTER_API_KEY`` when *None*.
    api_key: str | None = None
    #: Auto-resolved from ``OPENROUTER_BASE_URL``; defaults to OpenRouter.
    base_url: str | None = None
    #: Optional attribution headers (``HTTP-Referer`` / ``X-Title``).
    referer: str | None = None
    title: str | None = None
    timeout_s: float = 60.0

    def __post_init__(self) -> None:
        """Resolve environment defaults and validate."""
        if self.timeout_s <= 0:
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s}",
                hint="This is the per-request HTTP timeout in seconds.",
            )

        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV_VAR))
        if self.base_url is None:
            object.__setattr__(
                self,
                "base_url",
                os.environ.get(_BASE_URL_ENV_VAR) or DEFAULT_BASE_URL,
            )
        if self.referer is None:
            object.__setattr__(self, "referer", os.environ.get(_REFERER_ENV_VAR))
        if self.title is None:
            object.__setattr__(self, "title", os.environ.get(_TITLE_ENV_VAR))

    @property
    def api_key_env_var(self) -> str:
        """Name of the environment variable the API key is read from."""
        return _API_KEY_ENV_VAR

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(base_url={self.base_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"timeout_s={self.timeout_s})"
        )

    __repr__ = __str__
