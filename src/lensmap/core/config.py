"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings


class LLMConfig(BaseSettings):
    """Text-enhancement service configuration."""

    model_config = {"env_prefix": "LENSMAP_LLM_", "populate_by_name": True}

    provider: Literal["mock", "openai"] = "openai"
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LENSMAP_LLM_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo-0125"
    system_prompt: str = (
        "You are an expert eyewear data analyst. Extract precise information "
        "and return clean JSON only. Be accurate and consistent."
    )
    batch_max_tokens: int = 800
    individual_max_tokens: int = 100
    temperature: float = 0.1
    timeout_seconds: float = 30.0
    cost_per_token: float = 0.002


class EnhancerConfig(BaseSettings):
    """Batching, caching and accounting knobs for the enhancement engine."""

    model_config = {"env_prefix": "LENSMAP_ENHANCER_"}

    chunk_size: int = 8
    min_batch_size: int = 3
    fallback_truncate: int = 100
    cache_prefix_length: int = 50
    cache_min_confidence: int = 80
    cache_ttl_seconds: int = 3600
    batch_token_estimate: int = 200
    individual_token_estimate: int = 80
    size_token_estimate: int = 150
    individual_cost_equivalent: int = 100  # tokens one single-item call would cost


class ThresholdConfig(BaseSettings):
    """Advisory quality gates. Falling below them only warns."""

    model_config = {"env_prefix": "LENSMAP_THRESHOLD_"}

    min_detection_confidence: int = 60
    min_mapped_percentage: int = 60
    min_average_confidence: int = 70


class OutputConfig(BaseSettings):
    """Output file configuration."""

    model_config = {"env_prefix": "LENSMAP_OUTPUT_"}

    output_dir: str = "."
    known_brands: list[str] = Field(default_factory=lambda: ["Ocean", "Nike", "Adidas"])
    default_brand: str = "Unknown"


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "LENSMAP_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    llm: LLMConfig = Field(default_factory=LLMConfig)
    enhancer: EnhancerConfig = Field(default_factory=EnhancerConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
