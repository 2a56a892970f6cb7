"""Tests for configuration defaults and env overrides."""

from __future__ import annotations

import pytest

from lensmap.core.config import AppSettings, EnhancerConfig, LLMConfig, OutputConfig, ThresholdConfig


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("OPENAI_API_KEY", "LENSMAP_LLM_API_KEY", "LENSMAP_LLM_PROVIDER"):
        monkeypatch.delenv(name, raising=False)


def test_default_settings():
    settings = AppSettings()
    assert settings.environment == "dev"
    assert settings.log_level == "INFO"
    assert settings.llm.provider == "openai"


def test_llm_config_defaults():
    config = LLMConfig()
    assert config.api_key is None
    assert config.model == "gpt-3.5-turbo-0125"
    assert config.batch_max_tokens == 800
    assert config.individual_max_tokens == 100
    assert config.temperature == 0.1


def test_enhancer_defaults():
    config = EnhancerConfig()
    assert config.chunk_size == 8
    assert config.min_batch_size == 3
    assert config.fallback_truncate == 100
    assert config.cache_min_confidence == 80


def test_threshold_and_output_defaults():
    assert ThresholdConfig().min_detection_confidence == 60
    assert ThresholdConfig().min_mapped_percentage == 60
    assert ThresholdConfig().min_average_confidence == 70
    assert OutputConfig().known_brands == ["Ocean", "Nike", "Adidas"]
    assert OutputConfig().default_brand == "Unknown"


def test_api_key_read_from_openai_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    config = LLMConfig()
    assert config.api_key is not None
    assert config.api_key.get_secret_value() == "sk-from-env"


def test_nested_settings_read_env_at_construction(monkeypatch):
    monkeypatch.setenv("LENSMAP_ENHANCER_CHUNK_SIZE", "5")
    monkeypatch.setenv("LENSMAP_LLM_PROVIDER", "mock")
    settings = AppSettings()
    assert settings.enhancer.chunk_size == 5
    assert settings.llm.provider == "mock"


def test_api_key_by_field_name():
    config = LLMConfig(api_key="sk-test")
    assert config.api_key.get_secret_value() == "sk-test"
