"""
License read handlers.

``GetLicenseStatusHandler`` serves the public status lookup by key;
``GetLicenseHandler`` serves the administrative lookup by id.
"""
import logging
from datetime import datetime, timezone

from core.domain.exceptions import LicenseNotFoundError
from core.domain.value_objects import LicenseStatus
from licenses.application.dto.license_dto import LicenseDetailDTO, LicenseStatusDTO
from licenses.application.queries.get_license_status import GetLicenseQuery, GetLicenseStatusQuery
from licenses.application.services.license_cache_service import LicenseCacheService
from licenses.domain.key_codec import decode_license_key, hash_license_key
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


class GetLicenseStatusHandler:
    """
    Handler for GetLicenseStatusQuery.

    Does not record telemetry and never transitions the license.
    """

    def __init__(
        self,
        license_repository: LicenseRepository,
        cache_service: LicenseCacheService = None,
    ):
        self.license_repository = license_repository
        self.cache_service = cache_service or LicenseCacheService()

    async def handle(self, query: GetLicenseStatusQuery) -> LicenseStatusDTO:
        """
        Handle get license status query.

        Args:
            query: GetLicenseStatusQuery

        Returns:
            LicenseStatusDTO

        Raises:
            LicenseNotFoundError: If the key is malformed or unknown
        """
        if decode_license_key(query.license_key) is None:
            raise LicenseNotFoundError()

        key_hash = hash_license_key(query.license_key)
        cached = await self.cache_service.get_status(key_hash)
        if cached is None:
            license = await self.license_repository.find_by_key_hash(key_hash)
            if license is None:
                raise LicenseNotFoundError()
            cached = {
                "tier": license.tier.value,
                "status": license.status.value,
                "expires_at": license.expires_at,
            }
            await self.cache_service.set_status(key_hash, **cached)

        expires_at = cached["expires_at"]
        now = datetime.now(timezone.utc)
        valid = cached["status"] == LicenseStatus.ACTIVE.value and (
            expires_at is None or expires_at > now
        )
        return LicenseStatusDTO(
            valid=valid,
            tier=cached["tier"],
            status=cached["status"],
            expires_at=expires_at,
        )


class GetLicenseHandler:
    """Handler for GetLicenseQuery."""

    def __init__(self, license_repository: LicenseRepository):
        self.license_repository = license_repository

    async def handle(self, query: GetLicenseQuery) -> LicenseDetailDTO:
        license = await self.license_repository.find_by_id(query.license_id)
        if license is None:
            raise LicenseNotFoundError(f"License {query.license_id} not found")
        return LicenseDetailDTO.from_entity(license)
