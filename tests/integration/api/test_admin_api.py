"""
Integration tests for the administrative license API.
"""
import uuid
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from accounts.infrastructure.models import AdminApiKey
from audit.infrastructure.models import AuditLogEntry as AuditLogEntryModel
from licenses.domain.key_codec import KEY_PATTERN
from licenses.infrastructure.models import License as LicenseModel


@pytest.fixture
def admin_client(api_client, admin_key):
    _, raw_key = admin_key
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_key}")
    return api_client


@pytest.mark.django_db
@pytest.mark.integration
class TestAdminAuthentication:
    """The admin API rejects callers without a valid key."""

    def test_missing_key(self, api_client):
        response = api_client.get(reverse("license-detail", args=[uuid.uuid4()]))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_unknown_key(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-real-key")

        response = api_client.get(reverse("license-detail", args=[uuid.uuid4()]))

        assert response.status_code == 401

    def test_inactive_key(self, api_client, admin_key):
        model, raw_key = admin_key
        AdminApiKey.objects.filter(pk=model.pk).update(is_active=False)
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_key}")

        response = api_client.get(reverse("license-detail", args=[uuid.uuid4()]))

        assert response.status_code == 401

    def test_x_admin_key_header(self, api_client, admin_key):
        model, raw_key = admin_key

        response = api_client.get(
            reverse("license-detail", args=[uuid.uuid4()]), HTTP_X_ADMIN_KEY=raw_key
        )

        assert response.status_code == 404
        assert AdminApiKey.objects.get(pk=model.pk).last_used_at is not None


@pytest.mark.django_db
@pytest.mark.integration
class TestGenerateLicenseAPI:
    """Integration tests for POST /api/v1/admin/licenses/."""

    def test_generate(self, admin_client, admin_key, customer, signing_context):
        expires_at = timezone.now() + timedelta(days=365)

        response = admin_client.post(
            reverse("generate-license"),
            {
                "customerId": customer.id,
                "tier": "enterprise",
                "expiresAt": expires_at.isoformat(),
                "notes": "Pilot agreement",
            },
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert KEY_PATTERN.match(data["licenseKey"])
        assert data["license"]["tier"] == "enterprise"
        assert data["license"]["status"] == "active"
        assert data["license"]["customerId"] == customer.id
        assert data["license"]["notes"] == "Pilot agreement"
        assert data["licenseKey"] not in str(data["license"])

        entry = AuditLogEntryModel.objects.get(action="license.created")
        assert entry.actor_type == "admin"
        assert entry.actor_id == str(admin_key[0].id)

    def test_generated_key_validates(self, admin_client, api_client, customer, signing_context):
        created = admin_client.post(
            reverse("generate-license"), {"customerId": customer.id, "tier": "team"}, format="json"
        )
        api_client.credentials()

        response = api_client.post(
            reverse("validate-license"),
            {
                "licenseKey": created.json()["licenseKey"],
                "instanceId": str(uuid.uuid4()),
                "hostname": "app-01",
            },
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["tier"] == "team"

    def test_unknown_customer(self, admin_client, signing_context):
        response = admin_client.post(
            reverse("generate-license"), {"customerId": 999_999, "tier": "team"}, format="json"
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [
            {"tier": "team"},
            {"customerId": 1, "tier": "platinum"},
            {"customerId": 1, "tier": "team", "expiresAt": "2001-01-01T00:00:00Z"},
        ],
    )
    def test_invalid_request(self, admin_client, body):
        response = admin_client.post(reverse("generate-license"), body, format="json")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert not LicenseModel.objects.exists()


@pytest.mark.django_db
@pytest.mark.integration
class TestLicenseAdministrationAPI:
    """Integration tests for reading and transitioning a license."""

    def test_detail(self, admin_client, issue_license):
        issued = issue_license()

        response = admin_client.get(reverse("license-detail", args=[issued.license.id]))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(issued.license.id)
        assert data["keyHint"] == issued.license.key_hint
        assert data["validationCount"] == 0
        assert "licenseKey" not in data

    def test_unknown_license(self, admin_client):
        response = admin_client.get(reverse("license-detail", args=[uuid.uuid4()]))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LICENSE_NOT_FOUND"

    def test_revoke(self, admin_client, issue_license):
        issued = issue_license()

        response = admin_client.post(
            reverse("revoke-license", args=[issued.license.id]), {"reason": "chargeback"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "revoked"
        assert response.json()["revokedReason"] == "chargeback"
        assert response.json()["revokedAt"] is not None

    def test_revoke_twice(self, admin_client, issue_license):
        issued = issue_license()
        url = reverse("revoke-license", args=[issued.license.id])
        admin_client.post(url, {"reason": "chargeback"}, format="json")

        response = admin_client.post(url, {"reason": "again"}, format="json")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_LICENSE_STATUS"

    def test_revoke_requires_reason(self, admin_client, issue_license):
        issued = issue_license()

        response = admin_client.post(
            reverse("revoke-license", args=[issued.license.id]), {}, format="json"
        )

        assert response.status_code == 400
        assert LicenseModel.objects.get(id=issued.license.id).status == "active"

    def test_suspend_and_reactivate(self, admin_client, issue_license):
        issued = issue_license()

        suspended = admin_client.post(
            reverse("suspend-license", args=[issued.license.id]), {"reason": "abuse"}, format="json"
        )
        reactivated = admin_client.post(
            reverse("reactivate-license", args=[issued.license.id]), {}, format="json"
        )

        assert suspended.status_code == 200
        assert suspended.json()["suspensionReason"] == "abuse"
        assert reactivated.status_code == 200
        assert reactivated.json()["status"] == "active"

    def test_reactivate_active_license(self, admin_client, issue_license):
        issued = issue_license()

        response = admin_client.post(
            reverse("reactivate-license", args=[issued.license.id]), {}, format="json"
        )

        assert response.status_code == 400

    def test_extend(self, admin_client, issue_license):
        issued = issue_license(expires_at=timezone.now() + timedelta(days=5))
        new_expiry = timezone.now() + timedelta(days=90)

        response = admin_client.post(
            reverse("extend-license", args=[issued.license.id]),
            {"expiresAt": new_expiry.isoformat()},
            format="json",
        )

        assert response.status_code == 200
        assert LicenseModel.objects.get(id=issued.license.id).expires_at == new_expiry
        entry = AuditLogEntryModel.objects.get(action="license.extended")
        assert entry.actor_type == "admin"

    def test_extend_into_the_past(self, admin_client, issue_license):
        issued = issue_license()

        response = admin_client.post(
            reverse("extend-license", args=[issued.license.id]),
            {"expiresAt": (timezone.now() - timedelta(days=1)).isoformat()},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_transitions_are_audited_with_caller_address(self, admin_client, issue_license):
        issued = issue_license()

        admin_client.post(
            reverse("suspend-license", args=[issued.license.id]),
            {"reason": "abuse"},
            format="json",
            REMOTE_ADDR="198.51.100.20",
        )

        entry = AuditLogEntryModel.objects.get(action="license.suspended")
        assert entry.ip_address == "198.51.100.20"
        assert entry.details == {"reason": "abuse"}
