"""
License key codec.

Turns a structured payload into the customer-facing key text and back::

    TIER-XXXXXXXX-XXXXXXXX-XXXXXXXX-CCCC

The three middle segments are the RFC 4648 base32 encoding of a fixed
15-byte frame (big-endian):

    byte 0      format version (high nibble) | tier index (low nibble)
    bytes 1-4   customer id
    bytes 5-6   creation day, days since 1970-01-01
    bytes 7-8   expiry day, 0 when the key has no expiry
    bytes 9-14  random nonce

The frame always encodes to exactly 24 characters, so the random nonce
is the fill that completes the three segments. The checksum is the
first four hex digits of a SHA-256 over the tier, the segments, the
server's Ed25519 signature of the segment text and a fixed domain
constant. Only the holder of the signing key can mint a matching
checksum; anyone can decode the payload.
"""
import base64
import binascii
import hashlib
import hmac
import logging
import re
import secrets
import struct
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from core.domain.value_objects import LicenseTier
from licenses.ports.signer import Signer, SigningError

logger = logging.getLogger(__name__)

KEY_CHECKSUM_DOMAIN = "license-authority-v1"
KEY_FORMAT_VERSION = 1
KEY_SEPARATOR = "-"
SEGMENT_COUNT = 3
SEGMENT_LENGTH = 8
CHECKSUM_LENGTH = 4
NONCE_BYTES = 6
MAX_CUSTOMER_ID = 2**32 - 1
MAX_DAY_NUMBER = 2**16 - 1

KEY_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
KEY_PATTERN = re.compile(
    r"^(COMMUNITY|TEAM|ENTERPRISE)"
    r"-[A-Z2-7]{8}-[A-Z2-7]{8}-[A-Z2-7]{8}"
    r"-[0-9A-F]{4}$"
)

_EPOCH = date(1970, 1, 1)
_FRAME = struct.Struct(">BIHH6s")
_TIER_INDEX = {
    LicenseTier.COMMUNITY: 0,
    LicenseTier.TEAM: 1,
    LicenseTier.ENTERPRISE: 2,
}
_INDEX_TIER = {index: tier for tier, index in _TIER_INDEX.items()}
_SEGMENT_PATTERN = re.compile(r"^[A-Z2-7]{8}$")
_CHECKSUM_PATTERN = re.compile(r"^[0-9A-F]{4}$")


def generate_nonce() -> bytes:
    """Fresh random nonce for a payload."""
    return secrets.token_bytes(NONCE_BYTES)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _day_number(value: date) -> int:
    return (value - _EPOCH).days


@dataclass(frozen=True)
class LicenseKeyPayload:
    """
    Structured content of a license key.

    Dates are kept at day granularity; the persisted license row is
    authoritative for exact expiry instants.

    Raises:
        ValueError: If any field is missing, out of range or inconsistent
    """

    customer_id: int
    tier: LicenseTier
    created_at: date
    expires_at: Optional[date] = None
    nonce: bytes = field(default_factory=generate_nonce)

    def __post_init__(self):
        object.__setattr__(self, "created_at", _as_date(self.created_at))
        object.__setattr__(self, "expires_at", _as_date(self.expires_at))

        if isinstance(self.customer_id, bool) or not isinstance(self.customer_id, int):
            raise ValueError("Customer id must be an integer")
        if not 1 <= self.customer_id <= MAX_CUSTOMER_ID:
            raise ValueError(f"Customer id out of range: {self.customer_id}")
        if not isinstance(self.tier, LicenseTier):
            raise ValueError(f"Unknown tier: {self.tier!r}")
        if not isinstance(self.nonce, bytes) or len(self.nonce) != NONCE_BYTES:
            raise ValueError(f"Nonce must be {NONCE_BYTES} bytes")
        if not isinstance(self.created_at, date):
            raise ValueError("Creation date is required")
        if not 0 <= _day_number(self.created_at) <= MAX_DAY_NUMBER:
            raise ValueError("Creation date out of range")
        if self.expires_at is not None:
            if not 1 <= _day_number(self.expires_at) <= MAX_DAY_NUMBER:
                raise ValueError("Expiry date out of range")
            if self.expires_at < self.created_at:
                raise ValueError("Expiry date precedes creation date")

    def to_bytes(self) -> bytes:
        """Pack into the fixed 15-byte frame."""
        return _FRAME.pack(
            (KEY_FORMAT_VERSION << 4) | _TIER_INDEX[self.tier],
            self.customer_id,
            _day_number(self.created_at),
            _day_number(self.expires_at) if self.expires_at else 0,
            self.nonce,
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> "LicenseKeyPayload":
        """
        Unpack a frame.

        Raises:
            ValueError: For an unknown version, tier or an invalid field
            struct.error: For a frame of the wrong size
        """
        header, customer_id, created_day, expires_day, nonce = _FRAME.unpack(raw)
        if header >> 4 != KEY_FORMAT_VERSION:
            raise ValueError(f"Unsupported key format version: {header >> 4}")
        tier = _INDEX_TIER.get(header & 0x0F)
        if tier is None:
            raise ValueError(f"Unknown tier index: {header & 0x0F}")
        return cls(
            customer_id=customer_id,
            tier=tier,
            created_at=_EPOCH + timedelta(days=created_day),
            expires_at=_EPOCH + timedelta(days=expires_day) if expires_day else None,
            nonce=nonce,
        )


@dataclass(frozen=True)
class _KeyParts:
    tier: LicenseTier
    segments: List[str]
    checksum: str


def normalize_license_key(key: str) -> str:
    """Trim surrounding whitespace and uppercase."""
    return key.strip().upper()


def hash_license_key(key: str) -> str:
    """
    Stable lookup value for a key.

    SHA-256 hex digest of the normalized key. Every lookup goes through
    this value; the plaintext key is never stored.
    """
    return hashlib.sha256(normalize_license_key(key).encode("utf-8")).hexdigest()


def key_hint(key: str) -> str:
    """Short, non-secret rendering of a key for admin screens."""
    parts = normalize_license_key(key).split(KEY_SEPARATOR)
    if len(parts) < 3:
        return "invalid"
    return f"{parts[0]}-{parts[1][:4]}...-{parts[-1]}"


def _split_key(key) -> Optional[_KeyParts]:
    if not isinstance(key, str):
        return None
    parts = normalize_license_key(key).split(KEY_SEPARATOR)
    if len(parts) < 5:
        return None
    try:
        tier = LicenseTier(parts[0].lower())
    except ValueError:
        return None
    segments = parts[1:-1]
    checksum = parts[-1]
    if len(segments) != SEGMENT_COUNT:
        return None
    if not all(_SEGMENT_PATTERN.match(segment) for segment in segments):
        return None
    if not _CHECKSUM_PATTERN.match(checksum):
        return None
    return _KeyParts(tier=tier, segments=segments, checksum=checksum)


def decode_license_key(key) -> Optional[LicenseKeyPayload]:
    """
    Decode key text into its payload.

    Never raises: any malformed segment, unknown tier, bad frame or a
    tier prefix that disagrees with the payload yields ``None``. The
    checksum is not checked here; see ``LicenseKeyCodec.verify``.

    Args:
        key: Presented key text, untrusted

    Returns:
        LicenseKeyPayload, or None when the text is not a valid key
    """
    parts = _split_key(key)
    if parts is None:
        return None
    try:
        payload = LicenseKeyPayload.from_bytes(base64.b32decode("".join(parts.segments)))
    except (binascii.Error, struct.error, ValueError):
        return None
    if payload.tier is not parts.tier:
        return None
    return payload


class LicenseKeyCodec:
    """
    Encodes payloads into signed key text and verifies presented keys.

    Args:
        signer: Signing context used to derive checksums
    """

    def __init__(self, signer: Signer):
        self._signer = signer

    def encode(self, payload: LicenseKeyPayload) -> str:
        """
        Render ``payload`` as key text.

        Args:
            payload: Validated payload

        Returns:
            Key in ``TIER-XXXXXXXX-XXXXXXXX-XXXXXXXX-CCCC`` form
        """
        body = base64.b32encode(payload.to_bytes()).decode("ascii")
        segments = [
            body[i : i + SEGMENT_LENGTH] for i in range(0, SEGMENT_COUNT * SEGMENT_LENGTH, SEGMENT_LENGTH)
        ]
        checksum = self._checksum(payload.tier, segments)
        return KEY_SEPARATOR.join([payload.tier.value.upper(), *segments, checksum])

    def decode(self, key) -> Optional[LicenseKeyPayload]:
        """Decode without checking the checksum. See ``decode_license_key``."""
        return decode_license_key(key)

    def verify(self, key) -> bool:
        """
        True when ``key`` decodes and its checksum was minted by this signer.

        Malformed input returns False rather than raising, as does a
        signer that cannot sign.
        """
        parts = _split_key(key)
        if parts is None or decode_license_key(key) is None:
            return False
        try:
            expected = self._checksum(parts.tier, parts.segments)
        except SigningError:
            logger.error("Cannot verify license key checksum without a signing key")
            return False
        return hmac.compare_digest(expected, parts.checksum)

    def _checksum(self, tier: LicenseTier, segments: List[str]) -> str:
        signature = self._signer.sign("".join(segments).encode("ascii"))
        encoded_signature = base64.urlsafe_b64encode(signature).rstrip(b"=").decode("ascii")
        material = KEY_SEPARATOR.join(
            [tier.value, *segments, encoded_signature, KEY_CHECKSUM_DOMAIN]
        )
        return hashlib.sha256(material.encode("utf-8")).hexdigest()[:CHECKSUM_LENGTH].upper()
