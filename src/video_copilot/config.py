"""Configuration: validated settings resolved once, then frozen.

``VideoCopilotSettings`` reads ``GEMINI_*`` environment variables (and an
optional ``.env`` file when asked) through pydantic-settings. Programmatic
overrides take precedence over the environment. ``resolve_config`` turns the
settings into an immutable ``FrozenConfig`` that the composition root hands
to each component.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from video_copilot.constants import (
    API_TIERS,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    MAX_RETRIES,
    REQUEST_TIMEOUT_MS,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_DELAY_MS,
)
from video_copilot.exceptions import ConfigurationError

log = logging.getLogger(__name__)

APITier = Literal["free", "pay_as_you_go", "enterprise"]


class VideoCopilotSettings(BaseSettings):
    """Pydantic settings schema, populated from ``GEMINI_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="Google Gemini API key")
    model: str | None = Field(
        default=None,
        description="Pin this model instead of probing the fallback list",
    )
    api_tier: APITier = Field(default="free", description="Billing tier for pacing")
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=2)
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, ge=1)
    request_timeout_ms: int = Field(default=REQUEST_TIMEOUT_MS, ge=1)
    max_retries: int = Field(default=MAX_RETRIES, ge=0)
    retry_base_delay_ms: int = Field(default=RETRY_BASE_DELAY_MS, ge=0)
    retry_max_delay_ms: int = Field(default=RETRY_MAX_DELAY_MS, ge=0)
    rate_limit_delay_ms: int | None = Field(
        default=None,
        ge=0,
        description="Explicit request spacing; defaults to the tier's spacing",
    )
    knowledge_base_dir: Path | None = Field(default=None)

    @field_validator("api_tier", mode="before")
    @classmethod
    def parse_tier(cls, v: Any) -> Any:
        """Accept tier names in any case and with hyphens."""
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @model_validator(mode="after")
    def validate_retry_window(self) -> "VideoCopilotSettings":
        if self.retry_max_delay_ms < self.retry_base_delay_ms:
            raise ValueError(
                "retry_max_delay_ms must be >= retry_base_delay_ms"
            )
        return self


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to components."""

    api_key: str | None
    model: str | None
    api_tier: APITier
    temperature: float
    max_output_tokens: int
    request_timeout_ms: int
    max_retries: int
    retry_base_delay_ms: int
    retry_max_delay_ms: int
    rate_limit_delay_ms: int
    knowledge_base_dir: Path | None

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return (
            f"FrozenConfig(api_key={api_key_display!r}, model={self.model!r}, "
            f"api_tier={self.api_tier!r}, temperature={self.temperature!r}, "
            f"max_output_tokens={self.max_output_tokens!r}, "
            f"max_retries={self.max_retries!r}, "
            f"retry_base_delay_ms={self.retry_base_delay_ms!r}, "
            f"retry_max_delay_ms={self.retry_max_delay_ms!r}, "
            f"rate_limit_delay_ms={self.rate_limit_delay_ms!r}, "
            f"knowledge_base_dir={self.knowledge_base_dir!r})"
        )

    def __repr__(self) -> str:
        """Representation with redacted API key for safe debugging."""
        return self.__str__()


def resolve_config(
    *, env_file: str | Path | None = None, **overrides: Any
) -> FrozenConfig:
    """Resolve settings from overrides, environment and defaults, then freeze.

    Args:
        env_file: Optional dotenv file to read in addition to the environment.
        **overrides: Field values that win over every other source. ``None``
            values are ignored.

    Raises:
        ConfigurationError: If any value fails validation.
    """
    explicit = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = VideoCopilotSettings(_env_file=env_file, **explicit)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    rate_limit_delay_ms = settings.rate_limit_delay_ms
    if rate_limit_delay_ms is None:
        _rpm, rate_limit_delay_ms, _parallel = API_TIERS[settings.api_tier]

    config = FrozenConfig(
        api_key=settings.api_key,
        model=settings.model,
        api_tier=settings.api_tier,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
        request_timeout_ms=settings.request_timeout_ms,
        max_retries=settings.max_retries,
        retry_base_delay_ms=settings.retry_base_delay_ms,
        retry_max_delay_ms=settings.retry_max_delay_ms,
        rate_limit_delay_ms=rate_limit_delay_ms,
        knowledge_base_dir=settings.knowledge_base_dir,
    )
    log.debug("Resolved configuration: %s", config)
    return config
