"""Base agent with common dependency wiring and lifecycle patterns."""

from __future__ import annotations

from typing import Any

from lensmap.core.config import AppSettings
from lensmap.core.protocols import ICacheBackend, IModelProvider


class BaseAgent:
    """Common base for LensMap agents that talk to the enhancement service.

    Model provider, cache backend, and settings are injected at construction
    time.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        model: IModelProvider,
        cache: ICacheBackend,
    ) -> None:
        self._settings = settings
        self._model = model
        self._cache = cache

    async def health_check(self) -> dict[str, Any]:
        """Return agent health status."""
        return {
            "agent": self.__class__.__name__,
            "status": "healthy",
            "environment": self._settings.environment,
            "provider_configured": self._model.is_configured,
        }

    async def aclose(self) -> None:
        """Release the model provider's connections."""
        await self._model.aclose()
