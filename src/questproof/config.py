"""QuestProof centralized typed configuration.

All values can be overridden via environment variables with the QUESTPROOF_
prefix, except fields with explicit validation_alias which also accept their
conventional provider name.

Usage:
    from questproof.config import get_settings
    settings = get_settings()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from questproof.models.schemas import PipelineConfig, VerdictThresholds


class Settings(BaseSettings):
    """Typed, validated application settings."""

    model_config = {"env_prefix": "QUESTPROOF_", "env_file": ".env", "extra": "ignore", "populate_by_name": True}

    # --- Core ---
    env: str = Field("development", description="Runtime environment")
    version: str = Field("1.0.0", description="Application version")
    debug: bool = Field(False, description="Debug mode flag")
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(True, description="Emit JSON-structured logs")

    # --- Server ---
    host: str = Field("0.0.0.0", description="API bind host")
    port: int = Field(8000, description="API bind port")
    cors_origins: str = Field("*", description="Comma-separated CORS origins")
    admin_api_key: str = Field("", description="Key required by admin override/enrichment endpoints")

    # --- Database ---
    database_url: str = Field(
        "sqlite+aiosqlite:///./questproof.db",
        validation_alias=AliasChoices("DATABASE_URL", "QUESTPROOF_DATABASE_URL"),
        description="Async SQLAlchemy connection URL",
    )

    # --- Remote vision judge ---
    gemini_api_key: str = Field(
        "",
        validation_alias=AliasChoices("GEMINI_API_KEY", "QUESTPROOF_GEMINI_API_KEY"),
        description="Enables the remote vision judge when set",
    )
    judge_model: str = Field("gemini-1.5-flash", description="Multimodal model used by the judge")
    groq_judge_model: str = Field(
        "meta-llama/llama-4-scout-17b-16e-instruct", description="Groq vision model tried when Gemini fails"
    )
    gateway_api_key: str = Field(
        "",
        validation_alias=AliasChoices("LOVABLE_API_KEY", "QUESTPROOF_GATEWAY_API_KEY"),
        description="AI gateway credential, last judge provider tried",
    )
    gateway_base_url: str = Field("https://ai.gateway.lovable.dev/v1", description="OpenAI-compatible gateway endpoint")
    gateway_judge_model: str = Field("google/gemini-2.5-flash")
    judge_timeout: float = Field(20.0, description="Vision judge call timeout in seconds")

    # --- Scoring ---
    geofence_threshold_meters: float = Field(500.0, description="Maximum distance accepted by the geofence")
    verified_threshold: float = Field(0.85, description="Confidence at or above which a photo is verified")
    uncertain_threshold: float = Field(0.60, description="Confidence at or above which a photo is uncertain")

    # --- Photo fetch ---
    fetch_timeout: float = Field(15.0, description="Photo download timeout in seconds")

    # --- Object storage ---
    storage_url: str = Field(
        "",
        validation_alias=AliasChoices("STORAGE_URL", "QUESTPROOF_STORAGE_URL"),
        description="Storage REST base URL; empty keeps objects in memory",
    )
    storage_bucket: str = Field("quest-submissions", description="Bucket holding submission photos")
    storage_service_key: str = Field(
        "",
        validation_alias=AliasChoices("STORAGE_SERVICE_KEY", "QUESTPROOF_STORAGE_SERVICE_KEY"),
    )

    # --- Specialist checks ---
    hf_token: str = Field("", validation_alias=AliasChoices("HF_TOKEN", "QUESTPROOF_HF_TOKEN"))
    deepfake_model: str = Field("Ateeqq/ai-vs-human-image-detector", description="HF image-classification model")
    groq_api_key: str = Field("", validation_alias=AliasChoices("GROQ_API_KEY", "QUESTPROOF_GROQ_API_KEY"))
    groq_base_url: str = Field("https://api.groq.com/openai/v1", description="OpenAI-compatible endpoint")
    analysis_model: str = Field("meta-llama/llama-4-maverick-17b-128e-instruct")
    specialist_timeout: float = Field(60.0, description="Per specialist check timeout in seconds")
    run_specialists: bool = Field(False, description="Dispatch specialist checks after each verdict")

    # --- Derived helpers ---
    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def pipeline_config(self) -> PipelineConfig:
        """Explicit pipeline configuration derived from the environment."""
        return PipelineConfig(
            gemini_api_key=self.gemini_api_key or None,
            judge_model=self.judge_model,
            groq_api_key=self.groq_api_key or None,
            groq_base_url=self.groq_base_url,
            groq_judge_model=self.groq_judge_model,
            gateway_api_key=self.gateway_api_key or None,
            gateway_base_url=self.gateway_base_url,
            gateway_judge_model=self.gateway_judge_model,
            judge_timeout_s=self.judge_timeout,
            geofence_threshold_m=self.geofence_threshold_meters,
            thresholds=VerdictThresholds(
                verified=self.verified_threshold,
                uncertain=self.uncertain_threshold,
            ),
            run_specialists=self.run_specialists,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
