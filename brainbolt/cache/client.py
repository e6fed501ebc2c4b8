"""
Fast key-value cache (Redis).

The cache is never authoritative. Every call here swallows Redis failures
after logging them and answers like a miss, so an unreachable or disabled
cache only costs latency. Only redis errors are caught: durable-store
errors raised by callers pass straight through.
"""
import json
import logging
from urllib.parse import urlsplit
from typing import Any, Optional

import redis
from redis.exceptions import RedisError, WatchError

from brainbolt.core.config import CACHE_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)


class CacheClient:
    def __init__(self, redis_client: Optional[redis.Redis] = None):
        # None means the cache layer is disabled
        self.redis = redis_client

    @classmethod
    def from_url(cls, url: str) -> "CacheClient":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def get_json(self, key: str) -> Any:
        if self.redis is None:
            return None
        try:
            raw = self.redis.get(key)
        except RedisError as exc:
            logger.warning("[CACHE] get %s failed: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("[CACHE] dropping undecodable value at %s", key)
            self.delete(key)
            return None

    def set_json(self, key: str, value: Any, expire: int, nx: bool = False) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(self.redis.set(key, json.dumps(value), ex=expire, nx=nx))
        except RedisError as exc:
            logger.warning("[CACHE] set %s failed: %s", key, exc)
            return False

    def set_json_if_newer(self, key: str, value: dict, version: int, expire: int) -> bool:
        """
        Write *value* unless the cached copy already carries a higher
        ``state_version``. A concurrent writer drops the key instead.
        """
        if self.redis is None:
            return False
        try:
            with self.redis.pipeline() as pipe:
                try:
                    pipe.watch(key)
                    current = pipe.get(key)
                    if current is not None:
                        try:
                            cached_version = int(json.loads(current).get("state_version", 0))
                        except (json.JSONDecodeError, TypeError, ValueError, AttributeError):
                            cached_version = 0
                        if cached_version > version:
                            pipe.unwatch()
                            return False
                    pipe.multi()
                    pipe.set(key, json.dumps(value), ex=expire)
                    pipe.execute()
                    return True
                except WatchError:
                    logger.info("[CACHE] concurrent write on %s, invalidating", key)
            self.delete(key)
            return False
        except RedisError as exc:
            logger.warning("[CACHE] versioned set %s failed: %s", key, exc)
            return False

    def delete(self, *keys: str) -> int:
        if self.redis is None or not keys:
            return 0
        try:
            return int(self.redis.delete(*keys))
        except RedisError as exc:
            logger.warning("[CACHE] delete %s failed: %s", keys, exc)
            return 0

    def incr_window(self, key: str, expire: int) -> Optional[int]:
        """
        Increment a counter, setting its expiry only on the first increment.
        Returns None when the cache cannot answer.
        """
        if self.redis is None:
            return None
        try:
            count = int(self.redis.incr(key))
            if count == 1:
                self.redis.expire(key, expire)
            return count
        except RedisError as exc:
            logger.warning("[CACHE] incr %s failed: %s", key, exc)
            return None


def build_cache() -> CacheClient:
    if not CACHE_ENABLED:
        print("[CACHE] Disabled (CACHE_ENABLED=0); reading durable store directly", flush=True)
        return CacheClient(None)
    print(f"[CACHE] Using redis at {urlsplit(REDIS_URL).hostname}", flush=True)
    return CacheClient.from_url(REDIS_URL)
