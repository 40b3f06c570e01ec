"""
Serializers for the administrative license API.
"""

from django.utils import timezone
from rest_framework import serializers

from core.domain.value_objects import LicenseTier


class GenerateLicenseRequestSerializer(serializers.Serializer):
    """Serializer for a generate license request."""

    customerId = serializers.IntegerField(min_value=1)
    tier = serializers.ChoiceField(choices=[tier.value for tier in LicenseTier])
    expiresAt = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)

    def validate_expiresAt(self, value):
        if value is not None and value <= timezone.now():
            raise serializers.ValidationError("Expiry must be in the future")
        return value


class RevokeLicenseRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class SuspendLicenseRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class ExtendLicenseRequestSerializer(serializers.Serializer):
    expiresAt = serializers.DateTimeField()


class LicenseDetailSerializer(serializers.Serializer):
    """Serializer for LicenseDetailDTO. The key itself is never returned."""

    id = serializers.UUIDField()
    keyHint = serializers.CharField(source="key_hint")
    customerId = serializers.IntegerField(source="customer_id")
    tier = serializers.CharField()
    status = serializers.CharField()
    subscriptionId = serializers.UUIDField(source="subscription_id", allow_null=True)
    expiresAt = serializers.DateTimeField(source="expires_at", allow_null=True)
    revokedAt = serializers.DateTimeField(source="revoked_at", allow_null=True)
    revokedReason = serializers.CharField(source="revoked_reason", allow_null=True)
    suspensionReason = serializers.CharField(source="suspension_reason", allow_null=True)
    lastValidatedAt = serializers.DateTimeField(source="last_validated_at", allow_null=True)
    validationCount = serializers.IntegerField(source="validation_count")
    instanceId = serializers.UUIDField(source="instance_id", allow_null=True)
    hostname = serializers.CharField(allow_null=True)
    notes = serializers.CharField(allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")


class GenerateLicenseResponseSerializer(serializers.Serializer):
    """Serializer for a generated license. ``licenseKey`` is shown exactly once."""

    license = LicenseDetailSerializer()
    licenseKey = serializers.CharField()
