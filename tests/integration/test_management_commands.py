"""
Integration tests for the operator management commands.
"""
from io import StringIO

import pytest
from django.core.management import call_command
from django.urls import reverse

from accounts.infrastructure.models import AdminApiKey
from licenses.infrastructure.signing import SigningContext


@pytest.mark.django_db
@pytest.mark.integration
class TestCreateAdminKey:
    """Tests for the create_admin_key command."""

    def test_printed_key_authenticates(self, api_client):
        out = StringIO()

        call_command("create_admin_key", "ops-team", stdout=out)

        raw_key = out.getvalue().strip().splitlines()[-1]
        api_key = AdminApiKey.objects.get(name="ops-team")
        assert api_key.key_prefix == raw_key[:8]
        assert raw_key not in api_key.key_hash

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {raw_key}")
        response = api_client.get(
            reverse("license-detail", args=["00000000-0000-0000-0000-000000000000"])
        )
        assert response.status_code == 404


def test_generate_signing_keys():
    out = StringIO()

    call_command("generate_signing_keys", stdout=out)

    values = dict(
        line.split("=", 1) for line in out.getvalue().splitlines() if line.startswith("LICENSE_")
    )
    context = SigningContext.from_pem(
        values["LICENSE_SIGNING_PRIVATE_KEY"], values["LICENSE_SIGNING_PUBLIC_KEY"]
    )
    assert context.can_sign
    assert context.verify(b"segments", context.sign(b"segments"))
