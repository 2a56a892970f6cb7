"""Builds the configured model provider."""

from __future__ import annotations

from lensmap.core.config import AppSettings
from lensmap.core.protocols import IModelProvider
from lensmap.model_providers.mock_provider import MockModelProvider
from lensmap.model_providers.openai_provider import OpenAIChatProvider


def create_model_provider(settings: AppSettings | None = None) -> IModelProvider:
    if settings is None:
        settings = AppSettings()
    if settings.llm.provider == "mock":
        return MockModelProvider()
    return OpenAIChatProvider(settings.llm)
