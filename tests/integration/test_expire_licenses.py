"""
Integration tests for the expiry sweep.
"""
from datetime import timedelta
from io import StringIO

import pytest
from asgiref.sync import async_to_sync
from django.core.management import call_command
from django.utils import timezone

from audit.infrastructure.models import AuditLogEntry as AuditLogEntryModel
from core.domain.value_objects import LicenseStatus
from licenses.application.commands.expire_licenses import ExpireOverdueLicensesCommand
from licenses.application.handlers.expire_licenses_handler import ExpireOverdueLicensesHandler
from licenses.infrastructure.models import License as LicenseModel
from licenses.tasks import expire_overdue_licenses_task


@pytest.fixture
def overdue_license(issue_license):
    def _overdue(days_ago=1):
        issued = issue_license(expires_at=timezone.now() + timedelta(days=30))
        LicenseModel.objects.filter(id=issued.license.id).update(
            expires_at=timezone.now() - timedelta(days=days_ago)
        )
        return issued.license.id

    return _overdue


@pytest.fixture
def sweeper(license_repository, audit_sink):
    return ExpireOverdueLicensesHandler(license_repository, audit_sink)


@pytest.mark.django_db
@pytest.mark.integration
class TestExpireOverdueLicenses:
    """Integration tests for ExpireOverdueLicensesHandler."""

    def test_overdue_licenses_are_expired(self, overdue_license, issue_license, sweeper):
        overdue_id = overdue_license()
        current = issue_license(expires_at=timezone.now() + timedelta(days=30))
        perpetual = issue_license()

        result = async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand())

        assert result.found == 1
        assert result.expired == [overdue_id]
        assert LicenseModel.objects.get(id=overdue_id).status == LicenseStatus.EXPIRED.value
        assert LicenseModel.objects.get(id=current.license.id).status == "active"
        assert LicenseModel.objects.get(id=perpetual.license.id).status == "active"

    def test_sweep_is_audited(self, overdue_license, sweeper):
        overdue_id = overdue_license()

        async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand())

        entry = AuditLogEntryModel.objects.get(entity_id=overdue_id, action="license.expired")
        assert entry.actor_type == "system"
        assert entry.details["source"] == "sweep"
        assert entry.details["expiresAt"] == LicenseModel.objects.get(id=overdue_id).expires_at.isoformat()

    def test_dry_run_changes_nothing(self, overdue_license, sweeper):
        overdue_id = overdue_license()

        result = async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand(dry_run=True))

        assert result.found == 1
        assert result.expired == []
        assert LicenseModel.objects.get(id=overdue_id).status == "active"
        assert not AuditLogEntryModel.objects.filter(action="license.expired").exists()

    def test_batch_size_limits_the_sweep(self, overdue_license, sweeper):
        for days_ago in (1, 2, 3):
            overdue_license(days_ago=days_ago)

        result = async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand(batch_size=2))

        assert len(result.expired) == 2
        assert LicenseModel.objects.filter(status="active").count() == 1

    def test_suspended_licenses_are_left_alone(self, overdue_license, sweeper):
        overdue_id = overdue_license()
        LicenseModel.objects.filter(id=overdue_id).update(status=LicenseStatus.SUSPENDED.value)

        result = async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand())

        assert result.expired == []
        assert LicenseModel.objects.get(id=overdue_id).status == "suspended"

    def test_second_sweep_is_a_no_op(self, overdue_license, sweeper):
        overdue_license()
        async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand())

        result = async_to_sync(sweeper.handle)(ExpireOverdueLicensesCommand())

        assert result.found == 0
        assert AuditLogEntryModel.objects.filter(action="license.expired").count() == 1


@pytest.mark.django_db
@pytest.mark.integration
class TestExpireLicensesEntryPoints:
    """The management command and Celery task run the same sweep."""

    def test_management_command(self, overdue_license):
        overdue_id = overdue_license()
        out = StringIO()

        call_command("expire_licenses", stdout=out)

        assert "Found 1 overdue license(s)" in out.getvalue()
        assert "Marked 1 license(s) as expired" in out.getvalue()
        assert LicenseModel.objects.get(id=overdue_id).status == "expired"

    def test_management_command_dry_run(self, overdue_license):
        overdue_id = overdue_license()
        out = StringIO()

        call_command("expire_licenses", "--dry-run", stdout=out)

        assert "DRY RUN" in out.getvalue()
        assert LicenseModel.objects.get(id=overdue_id).status == "active"

    def test_celery_task(self, overdue_license):
        overdue_id = overdue_license()

        expired = expire_overdue_licenses_task.apply().get()

        assert expired == 1
        assert LicenseModel.objects.get(id=overdue_id).status == "expired"
