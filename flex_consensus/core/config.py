"""Application configuration using Pydantic Settings.

Environment variables are loaded with the FLEX_ prefix, e.g.
FLEX_OPENAI_API_KEY, FLEX_PROVIDER_TIMEOUT_SECONDS, FLEX_DATABASE_PATH.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flex_consensus.core.constants import DEFAULT_PLAN_LIMITS, Timeouts


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Pattern: Pydantic Settings with Environment Variables
    """

    # Service configuration
    service_name: str = "flex-consensus"
    port: int = 3000
    environment: str = Field(default="development", description="Runtime environment")
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )

    # Provider endpoints
    openai_base_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="OpenAI chat completions endpoint",
    )
    openai_model: str = Field(default="gpt-5", description="OpenAI model id")
    openai_api_key: SecretStr = Field(default=SecretStr(""), description="OpenAI API key")

    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1/messages",
        description="Anthropic messages endpoint",
    )
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Anthropic model id",
    )
    anthropic_api_key: SecretStr = Field(default=SecretStr(""), description="Anthropic API key")
    anthropic_version: str = Field(default="2023-06-01", description="anthropic-version header")

    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent",
        description="Gemini generateContent endpoint",
    )
    gemini_api_key: SecretStr = Field(default=SecretStr(""), description="Gemini API key")

    xai_base_url: str = Field(
        default="https://api.x.ai/v1/chat/completions",
        description="xAI chat completions endpoint",
    )
    xai_model: str = Field(default="grok-beta", description="xAI model id")
    xai_api_key: SecretStr = Field(default=SecretStr(""), description="xAI API key")

    # Provider call behaviour
    provider_timeout_seconds: float = Field(
        default=Timeouts.PROVIDER_CALL,
        gt=0,
        description="Per-provider call timeout",
    )
    provider_max_tokens: int = Field(default=1000, gt=0, description="Max tokens per answer")
    provider_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    provider_confidence: float = Field(
        default=0.85,
        gt=0.0,
        le=1.0,
        description="Confidence reported for a successful provider answer",
    )
    provider_confidences: dict[str, float] = Field(
        default_factory=dict,
        description="Per-provider confidence overriding provider_confidence, keyed by provider id",
    )
    confidence_jitter: float = Field(
        default=0.0,
        ge=0.0,
        le=0.5,
        description="Simulation mode: adds seeded uniform noise in [0, jitter] to confidence",
    )
    confidence_seed: int | None = Field(
        default=None,
        description="Seed for the confidence simulation mode",
    )

    # Orchestration
    orchestration_timeout_seconds: float | None = Field(
        default=Timeouts.ORCHESTRATION,
        description="Bound on a whole fan-out; None disables it",
    )
    max_concurrent_queries: int = Field(
        default=16,
        ge=1,
        description="Background queries processed at the same time",
    )
    estimated_seconds: int = Field(
        default=15,
        ge=0,
        description="Completion estimate reported on submission",
    )

    # Storage and quota
    database_path: str | None = Field(
        default=None,
        description="SQLite file for queries and usage counters; in-memory when unset",
    )
    plan_limits: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_PLAN_LIMITS),
        description="Daily query ceiling per plan tier",
    )

    @field_validator("provider_confidences")
    @classmethod
    def check_provider_confidences(cls, value: dict[str, float]) -> dict[str, float]:
        for provider, confidence in value.items():
            if not 0.0 < confidence <= 1.0:
                raise ValueError(f"confidence for {provider} must be in (0, 1], got {confidence}")
        return {provider.strip().lower(): confidence for provider, confidence in value.items()}

    def confidence_for(self, provider_id: str) -> float:
        """Base confidence for one provider."""
        return self.provider_confidences.get(provider_id, self.provider_confidence)

    model_config = SettingsConfigDict(
        env_prefix="FLEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings singleton
    """
    return Settings()
