from typing import Any, Optional
from finboard.core.redis_client import redis_client
from finboard.core.logger import logger
import json
from finboard.scripts.json_utils import json_serializer


class CacheManager:
    def __init__(self, prefix: str = ""):
        self.prefix = prefix.rstrip(":")

    def _build_key(self, *parts: Any, user_id: Optional[str] = None) -> str:
        """builds a cache key: metrics:user:alice:active or imports:user:alice:3f2a..."""
        segments = [self.prefix]
        if user_id is not None:
            segments.append(f"user:{user_id}")
        segments.extend(str(p) for p in parts if p is not None)
        return ":".join(segments)

    def get(self, *parts, user_id: Optional[str] = None):
        key = self._build_key(*parts, user_id=user_id)
        data = redis_client.get(key)
        if data:
            logger.debug(f"Cache hit: {key}")
            return json.loads(data)
        logger.debug(f"Cache miss: {key}")
        return None

    def set(self, data: Any, *parts, user_id: Optional[str] = None, ttl: int = 300):
        key = self._build_key(*parts, user_id=user_id)
        redis_client.set(key, json.dumps(data, default=json_serializer), ex=ttl)
        logger.debug(f"Cache set: {key} (TTL={ttl}s)")

    def pop(self, *parts, user_id: Optional[str] = None):
        """Read and remove an entry atomically; only one caller can claim it."""
        key = self._build_key(*parts, user_id=user_id)
        data = redis_client.getdel(key)
        if data:
            logger.debug(f"Cache pop: {key}")
            return json.loads(data)
        logger.debug(f"Cache miss: {key}")
        return None

    def delete(self, *parts, user_id: Optional[str] = None) -> bool:
        key = self._build_key(*parts, user_id=user_id)
        removed = redis_client.delete(key)
        logger.debug(f"Cache deleted: {key}")
        return bool(removed)

    def clear(self, pattern: Optional[str] = None):
        """Delete all cache entries matching the given pattern."""
        pattern = pattern or f"{self.prefix}*"
        count = 0
        for key in redis_client.scan_iter(pattern):
            redis_client.delete(key)
            count += 1
        logger.info(f"Cleared {count} cache entries for pattern '{pattern}'")
        return count
