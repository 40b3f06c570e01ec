"""
Signer port.

The key codec signs and verifies through this interface so the domain
does not depend on a particular crypto library.
"""
from abc import ABC, abstractmethod


class SigningError(Exception):
    """Raised when signing is impossible, e.g. a verify-only context."""


class Signer(ABC):
    """Produces and checks detached signatures over byte strings."""

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """
        Sign ``data``.

        Args:
            data: Bytes to sign

        Returns:
            Raw signature bytes

        Raises:
            SigningError: If this signer holds no private key
        """

    @abstractmethod
    def verify(self, data: bytes, signature: bytes) -> bool:
        """
        Check ``signature`` over ``data``.

        Returns:
            True only for a valid signature; never raises for bad input
        """
