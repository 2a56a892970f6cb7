"""Shared test doubles: re-export the memory cache and the mock provider."""

from __future__ import annotations

from lensmap.model_providers.mock_provider import MockModelProvider
from lensmap.persistence.memory_backend import MemoryCacheBackend

__all__ = ["MemoryCacheBackend", "MockModelProvider"]
