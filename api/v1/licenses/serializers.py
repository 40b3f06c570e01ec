"""
Serializers for the public license API.

Field names are camelCase on the wire; ``source`` maps them onto the
snake_case DTO attributes.
"""

from rest_framework import serializers


class ValidateLicenseRequestSerializer(serializers.Serializer):
    """Serializer for a validation request from a self-hosted deployment."""

    licenseKey = serializers.CharField(max_length=128, trim_whitespace=True)
    instanceId = serializers.UUIDField()
    hostname = serializers.CharField(max_length=255)


class LimitsSerializer(serializers.Serializer):
    maxUsers = serializers.IntegerField()
    maxInstances = serializers.IntegerField()
    maxConcurrentSessions = serializers.IntegerField()


class FeaturesSerializer(serializers.Serializer):
    sso = serializers.BooleanField()
    auditLogs = serializers.BooleanField()
    customBranding = serializers.BooleanField()
    prioritySupport = serializers.BooleanField()
    apiAccess = serializers.BooleanField()
    multiTenant = serializers.BooleanField()


class EntitlementSnapshotSerializer(serializers.Serializer):
    """Serializer for EntitlementSnapshotDTO."""

    valid = serializers.BooleanField()
    tier = serializers.CharField()
    expiresAt = serializers.DateTimeField(source="expires_at", allow_null=True)
    limits = LimitsSerializer(source="limits_dict")
    features = FeaturesSerializer(source="features_dict")
    organization = serializers.CharField(allow_null=True, required=False)
    validatedAt = serializers.DateTimeField(source="validated_at")


class LicenseStatusSerializer(serializers.Serializer):
    """Serializer for LicenseStatusDTO."""

    valid = serializers.BooleanField()
    tier = serializers.CharField()
    status = serializers.CharField()
    expiresAt = serializers.DateTimeField(source="expires_at", allow_null=True)


class PublicKeySerializer(serializers.Serializer):
    publicKey = serializers.CharField()
    algorithm = serializers.CharField()


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField()
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    """Shape of every error body rendered by the API exception handler."""

    error = ErrorDetailSerializer()
