"""
License cache service.

Caches public status lookups by key hash. Entries are dropped by the
event handlers whenever a license transitions, and ``valid`` is always
recomputed on read so a cached entry never outlives an expiry.
"""
import logging
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.utils.dateparse import parse_datetime

from core.infrastructure.cache import CachePort
from core.infrastructure.cache_adapters import DjangoCacheAdapter

logger = logging.getLogger(__name__)


class LicenseCacheService:
    """Service for caching license status."""

    def __init__(self, cache: CachePort = None):
        self.cache = cache or DjangoCacheAdapter(namespace="license_status")

    @staticmethod
    def _status_key(key_hash: str) -> str:
        return f"license:status:{key_hash}"

    async def get_status(self, key_hash: str) -> Optional[dict]:
        """
        Cached status fields for a key hash.

        Returns:
            Dict with ``tier``, ``status`` and ``expires_at`` or None
        """
        cached = await self.cache.get(self._status_key(key_hash))
        if not cached:
            return None
        expires_at = cached.get("expires_at")
        return {
            "tier": cached["tier"],
            "status": cached["status"],
            "expires_at": parse_datetime(expires_at) if expires_at else None,
        }

    async def set_status(
        self, key_hash: str, tier: str, status: str, expires_at: Optional[datetime]
    ) -> None:
        await self.cache.set(
            self._status_key(key_hash),
            {
                "tier": tier,
                "status": status,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
            timeout=settings.LICENSE_STATUS_CACHE_TTL,
        )

    async def invalidate_status(self, key_hash: str) -> None:
        await self.cache.delete(self._status_key(key_hash))
        logger.debug("Invalidated license status cache", extra={"key_hash": key_hash[:8]})
