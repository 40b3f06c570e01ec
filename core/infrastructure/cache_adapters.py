"""
Cache adapter backed by Django's cache framework.

Cache failures degrade to a miss: the database stays the source of
truth, so an unreachable Redis must never fail a request.
"""

import logging
from typing import Any, Optional

from asgiref.sync import sync_to_async
from django.core.cache import cache

from core.infrastructure.cache import CachePort
from core.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)


class DjangoCacheAdapter(CachePort):
    """
    Django cache adapter implementing CachePort.

    Args:
        namespace: Label used for the hit/miss metrics
    """

    def __init__(self, namespace: str = "default"):
        self.namespace = namespace

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await sync_to_async(cache.get)(key)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Error reading cache", extra={"cache_key": key}, exc_info=True)
            return None

        if value is None:
            cache_misses_total.labels(cache_key=self.namespace).inc()
        else:
            cache_hits_total.labels(cache_key=self.namespace).inc()
        return value

    async def set(self, key: str, value: Any, timeout: Optional[int] = None) -> None:
        try:
            await sync_to_async(cache.set)(key, value, timeout=timeout)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Error writing cache", extra={"cache_key": key}, exc_info=True)

    async def delete(self, key: str) -> None:
        try:
            await sync_to_async(cache.delete)(key)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Error deleting cache key", extra={"cache_key": key}, exc_info=True)
