"""
Signing context.

Holds the Ed25519 keypair that license checksums are derived from. The
context is built once at process start (``LicensesConfig.ready``) and
handed to the issuer and validator; tests build their own throwaway
context with ``SigningContext.generate()``.
"""
import base64
import binascii
import logging
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from django.core.exceptions import ImproperlyConfigured

from licenses.ports.signer import Signer, SigningError

logger = logging.getLogger(__name__)


def _decode_key_material(value: Union[str, bytes]) -> bytes:
    """
    Accept raw PEM or base64-encoded PEM.

    Raises:
        ImproperlyConfigured: If the value is neither
    """
    raw = value.encode("utf-8") if isinstance(value, str) else value
    raw = raw.strip()
    if raw.startswith(b"-----BEGIN"):
        return raw
    try:
        decoded = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImproperlyConfigured("Signing key is neither PEM nor base64-encoded PEM") from e
    if not decoded.strip().startswith(b"-----BEGIN"):
        raise ImproperlyConfigured("Decoded signing key is not PEM")
    return decoded


def _public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


class SigningContext(Signer):
    """
    Ed25519 keypair holder.

    Args:
        public_key: Key used for verification
        private_key: Key used for signing; None for a verify-only context
        ephemeral: True when the pair was generated in-process
    """

    def __init__(
        self,
        public_key: Ed25519PublicKey,
        private_key: Optional[Ed25519PrivateKey] = None,
        ephemeral: bool = False,
    ):
        self._public_key = public_key
        self._private_key = private_key
        self.ephemeral = ephemeral

    @classmethod
    def generate(cls) -> "SigningContext":
        """Fresh in-memory keypair. Keys it signs die with the process."""
        private_key = Ed25519PrivateKey.generate()
        return cls(public_key=private_key.public_key(), private_key=private_key, ephemeral=True)

    @classmethod
    def from_pem(
        cls,
        private_pem: Optional[Union[str, bytes]] = None,
        public_pem: Optional[Union[str, bytes]] = None,
    ) -> "SigningContext":
        """
        Load key material.

        The public key is derived from the private key when only the
        latter is given.

        Raises:
            ImproperlyConfigured: If the material is unreadable, not Ed25519,
                missing, or the public key does not match the private key
        """
        private_key = None
        public_key = None

        if private_pem:
            try:
                private_key = serialization.load_pem_private_key(
                    _decode_key_material(private_pem), password=None
                )
            except ValueError as e:
                raise ImproperlyConfigured(f"Unreadable signing private key: {e}") from e
            if not isinstance(private_key, Ed25519PrivateKey):
                raise ImproperlyConfigured("Signing private key must be Ed25519")

        if public_pem:
            try:
                public_key = serialization.load_pem_public_key(_decode_key_material(public_pem))
            except ValueError as e:
                raise ImproperlyConfigured(f"Unreadable signing public key: {e}") from e
            if not isinstance(public_key, Ed25519PublicKey):
                raise ImproperlyConfigured("Signing public key must be Ed25519")

        if private_key is not None:
            derived = private_key.public_key()
            if public_key is not None and _public_bytes(public_key) != _public_bytes(derived):
                raise ImproperlyConfigured("Signing public key does not match the private key")
            public_key = derived

        if public_key is None:
            raise ImproperlyConfigured("No signing key material supplied")

        return cls(public_key=public_key, private_key=private_key)

    @classmethod
    def from_settings(cls, settings) -> "SigningContext":
        """
        Build the process-wide context from Django settings.

        Falls back to an ephemeral keypair only when
        ``LICENSE_SIGNING_ALLOW_EPHEMERAL`` is set.

        Raises:
            ImproperlyConfigured: If no key material is configured and
                ephemeral keys are not allowed
        """
        private_pem = getattr(settings, "LICENSE_SIGNING_PRIVATE_KEY", "")
        public_pem = getattr(settings, "LICENSE_SIGNING_PUBLIC_KEY", "")

        if private_pem or public_pem:
            context = cls.from_pem(private_pem or None, public_pem or None)
            logger.info(
                "License signing keys loaded",
                extra={"can_sign": context.can_sign},
            )
            return context

        if getattr(settings, "LICENSE_SIGNING_ALLOW_EPHEMERAL", False):
            logger.warning(
                "No license signing keys configured; generated an ephemeral keypair. "
                "Keys issued now will fail verification after a restart. "
                "Do not use in production."
            )
            return cls.generate()

        raise ImproperlyConfigured(
            "LICENSE_SIGNING_PRIVATE_KEY is required when ephemeral signing keys are disabled"
        )

    @property
    def can_sign(self) -> bool:
        return self._private_key is not None

    def sign(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise SigningError("Signing context has no private key")
        return self._private_key.sign(data)

    def verify(self, data: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, data)
        except (InvalidSignature, TypeError, ValueError):
            return False
        return True

    def public_key_pem(self) -> str:
        """PEM text of the public key, safe to publish."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def private_key_pem(self) -> str:
        """PEM text of the private key, for exporting a generated pair."""
        if self._private_key is None:
            raise SigningError("Signing context has no private key")
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")


def get_signing_context() -> SigningContext:
    """The process-wide context built by ``LicensesConfig.ready``."""
    from django.apps import apps

    return apps.get_app_config("licenses").signing_context
