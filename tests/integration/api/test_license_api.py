"""
Integration tests for the public license API.
"""
import uuid

import pytest
from django.urls import reverse

from audit.infrastructure.models import AuditLogEntry as AuditLogEntryModel
from core.domain.value_objects import LicenseStatus, LicenseTier
from licenses.infrastructure.models import License as LicenseModel


def _validate_body(license_key, **overrides):
    body = {
        "licenseKey": license_key,
        "instanceId": str(uuid.uuid4()),
        "hostname": "app-01.internal",
    }
    body.update(overrides)
    return body


@pytest.mark.django_db
@pytest.mark.integration
class TestValidateLicenseAPI:
    """Integration tests for POST /api/v1/licenses/validate/."""

    def test_validate_returns_entitlement_snapshot(self, api_client, issue_license):
        issued = issue_license(tier=LicenseTier.TEAM)

        response = api_client.post(
            reverse("validate-license"), _validate_body(issued.license_key), format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["tier"] == "team"
        assert data["expiresAt"] is None
        assert data["organization"] == "Analytical Engines Ltd"
        assert set(data["limits"]) == {"maxUsers", "maxInstances", "maxConcurrentSessions"}
        assert set(data["features"]) == {
            "sso",
            "auditLogs",
            "customBranding",
            "prioritySupport",
            "apiAccess",
            "multiTenant",
        }
        assert "validatedAt" in data

    def test_client_address_is_recorded(self, api_client, issue_license):
        issued = issue_license()

        api_client.post(
            reverse("validate-license"),
            _validate_body(issued.license_key),
            format="json",
            HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1",
            HTTP_USER_AGENT="selfhosted/2.4.1",
        )

        entry = AuditLogEntryModel.objects.get(action="license.validated")
        assert entry.ip_address == "203.0.113.9"
        assert entry.user_agent == "selfhosted/2.4.1"

    def test_unknown_key(self, api_client, signing_context):
        response = api_client.post(
            reverse("validate-license"), _validate_body("not-a-license-key"), format="json"
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "LICENSE_NOT_FOUND"

    @pytest.mark.parametrize(
        "status,code",
        [
            (LicenseStatus.REVOKED, "LICENSE_REVOKED"),
            (LicenseStatus.SUSPENDED, "LICENSE_SUSPENDED"),
            (LicenseStatus.EXPIRED, "LICENSE_EXPIRED"),
        ],
    )
    def test_unentitled_license(self, api_client, issue_license, status, code):
        issued = issue_license()
        LicenseModel.objects.filter(id=issued.license.id).update(status=status.value)

        response = api_client.post(
            reverse("validate-license"), _validate_body(issued.license_key), format="json"
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == code

    def test_invalid_body(self, api_client):
        response = api_client.post(
            reverse("validate-license"),
            {"licenseKey": "TEAM-X", "instanceId": "not-a-uuid"},
            format="json",
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "instanceId" in error["details"]
        assert "hostname" in error["details"]

    def test_rate_limit(self, api_client, issue_license, settings):
        settings.RATE_LIMITS = {"/api/v1/licenses/": (2, 3600)}
        issued = issue_license()
        url = reverse("validate-license")

        first = api_client.post(url, _validate_body(issued.license_key), format="json")
        second = api_client.post(url, _validate_body(issued.license_key), format="json")
        third = api_client.post(url, _validate_body(issued.license_key), format="json")

        assert first["X-RateLimit-Limit"] == "2"
        assert first["X-RateLimit-Remaining"] == "1"
        assert second.status_code == 200
        assert third.status_code == 429
        assert third.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        assert "Retry-After" in third
        assert LicenseModel.objects.get(id=issued.license.id).validation_count == 2

    def test_rate_limit_is_per_client(self, api_client, issue_license, settings):
        settings.RATE_LIMITS = {"/api/v1/licenses/": (1, 3600)}
        issued = issue_license()
        url = reverse("validate-license")

        api_client.post(url, _validate_body(issued.license_key), format="json", REMOTE_ADDR="10.0.0.1")
        response = api_client.post(
            url, _validate_body(issued.license_key), format="json", REMOTE_ADDR="10.0.0.2"
        )

        assert response.status_code == 200


@pytest.mark.django_db
@pytest.mark.integration
class TestLicenseStatusAPI:
    """Integration tests for GET /api/v1/licenses/<key>/status/."""

    def test_status(self, api_client, issue_license):
        issued = issue_license(tier=LicenseTier.ENTERPRISE)

        response = api_client.get(reverse("license-status", args=[issued.license_key]))

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "tier": "enterprise",
            "status": "active",
            "expiresAt": None,
        }

    def test_status_does_not_record_validation(self, api_client, issue_license):
        issued = issue_license()

        api_client.get(reverse("license-status", args=[issued.license_key]))

        assert LicenseModel.objects.get(id=issued.license.id).validation_count == 0

    def test_unknown_key(self, api_client):
        response = api_client.get(reverse("license-status", args=["TEAM-NOPE"]))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LICENSE_NOT_FOUND"


@pytest.mark.django_db
@pytest.mark.integration
class TestPublicKeyAPI:
    """Integration tests for GET /api/v1/licenses/public-key/."""

    def test_public_key(self, api_client, signing_context):
        response = api_client.get(reverse("license-public-key"))

        assert response.status_code == 200
        assert response.json() == {
            "publicKey": signing_context.public_key_pem(),
            "algorithm": "Ed25519",
        }
