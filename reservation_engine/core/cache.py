# reservation_engine/core/cache.py
import json
import logging
from typing import Any, Iterable, List, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

AVAILABLE_TABLES_PREFIX = "tables:available:"


class TableListingCache:
    """
    Short-lived Redis cache for the public available-tables listing.

    Works as a pass-through when no Redis client is configured. Redis faults
    are logged and treated as cache misses so the listing keeps working.
    """

    def __init__(self, client: Optional[redis.Redis], ttl: int = 30):
        self.client = client
        self.ttl = ttl

    @staticmethod
    def make_key(
            min_capacity: Optional[int],
            section: Optional[str],
            features: Optional[Iterable[str]]
    ) -> str:
        feature_part = ",".join(sorted(features)) if features else "-"
        return (
            f"{AVAILABLE_TABLES_PREFIX}"
            f"{min_capacity if min_capacity is not None else '-'}:"
            f"{section or '-'}:{feature_part}"
        )

    async def get(self, key: str) -> Optional[List[Any]]:
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw else None

    async def set(self, key: str, payload: List[Any]) -> None:
        if self.client is None:
            return
        try:
            await self.client.set(key, json.dumps(payload), ex=self.ttl)
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def invalidate(self) -> int:
        """
        Drop every cached available-tables listing.

        Returns:
            Number of removed keys
        """
        if self.client is None:
            return 0
        try:
            keys = [key async for key in self.client.scan_iter(match=f"{AVAILABLE_TABLES_PREFIX}*")]
            if keys:
                await self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Cache invalidation failed: {e}")
            return 0
        return len(keys)
