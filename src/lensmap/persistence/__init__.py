"""Cache backends behind the ICacheBackend protocol."""

from __future__ import annotations

from lensmap.persistence.memory_backend import MemoryCacheBackend


def create_cache() -> MemoryCacheBackend:
    """Create the enhancement result cache.

    Results are never persisted across runs, so the in-memory backend is the
    only one wired up.
    """
    return MemoryCacheBackend()


__all__ = ["MemoryCacheBackend", "create_cache"]
