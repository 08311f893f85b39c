# common/cache.py
import json
from typing import Any, Optional

import redis
from loguru import logger


class JsonCache:
    """
    Thin JSON cache over Redis.

    When no URL is configured, or Redis is not reachable when the cache is
    opened, every operation is a no-op and reads miss.
    """

    def __init__(self, redis_url: Optional[str], ttl_seconds: int = 60):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._client: Optional[redis.Redis] = None

    def open(self) -> None:
        if not self.redis_url:
            return

        try:
            client = redis.from_url(self.redis_url, decode_responses=True)
            # Lightweight health check
            client.ping()
        except redis.RedisError as exc:
            logger.warning("Redis not reachable, caching disabled: {}", exc)
            self._client = None
            return

        self._client = client
        logger.info("Redis cache enabled")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def get_json(self, key: str) -> Optional[Any]:
        if self._client is None:
            return None

        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed for {}: {}", key, exc)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        if self._client is None:
            return

        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        try:
            self._client.setex(key, ttl, json.dumps(value, default=str))
        except redis.RedisError as exc:
            logger.warning("Cache write failed for {}: {}", key, exc)

    def delete_prefix(self, prefix: str) -> None:
        """
        Delete all keys starting with prefix.
        Example: prefix='bookings:approved'.
        """
        if self._client is None:
            return

        try:
            for k in self._client.scan_iter(prefix + "*"):
                self._client.delete(k)
        except redis.RedisError as exc:
            logger.warning("Cache invalidation failed for {}: {}", prefix, exc)
