from datetime import datetime
from typing import Callable

from brainbolt.cache.client import CacheClient, build_cache
from brainbolt.progression.decay import utcnow

_cache = None


def get_cache() -> CacheClient:
    """Shared cache client, built lazily on first use."""
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


def get_clock() -> Callable[[], datetime]:
    """Wall clock for request handlers; tests override it with a fixed one."""
    return utcnow
