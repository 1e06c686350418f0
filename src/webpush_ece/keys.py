"""
P-256 key material for Web Push.

The same curve serves two purposes:
- ephemeral ECDH keys, generated fresh for every encrypted message
- long-term VAPID signing keys, generated once by the application server

Keys travel as raw bytes: public keys as 65-byte uncompressed points,
private keys as 32-byte big-endian scalars.
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from webpush_ece.constants import (
    AUTH_SECRET_MIN_SIZE,
    P256_PRIVATE_KEY_SIZE,
    P256_PUBLIC_KEY_SIZE,
    P256_UNCOMPRESSED_PREFIX,
)
from webpush_ece.exceptions import InvalidKeyError
from webpush_ece.headers import b64url_decode, b64url_encode

__all__ = [
    "KeyPair",
    "generate_key_pair",
    "generate_vapid_keys",
    "load_private_key",
    "load_public_key",
    "public_key_bytes",
    "validate_auth_secret",
    "validate_private_key",
    "validate_public_key",
]


@dataclass(frozen=True)
class KeyPair:
    """Raw P-256 key pair."""

    public_key: bytes
    """65-byte uncompressed point."""

    private_key: bytes
    """32-byte scalar."""

    def __repr__(self) -> str:
        # Never render the private scalar
        return f"KeyPair(public_key={self.public_key_b64url!r})"

    @classmethod
    def from_private_key(cls, private_key: ec.EllipticCurvePrivateKey) -> KeyPair:
        """Serialize a cryptography private key to raw bytes."""
        return cls(
            public_key=public_key_bytes(private_key.public_key()),
            private_key=private_key.private_numbers().private_value.to_bytes(P256_PRIVATE_KEY_SIZE, "big"),
        )

    @property
    def public_key_b64url(self) -> str:
        return b64url_encode(self.public_key)

    @property
    def private_key_b64url(self) -> str:
        return b64url_encode(self.private_key)


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Encode a public key as an uncompressed X9.62 point."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def generate_key_pair() -> KeyPair:
    """
    Generate a P-256 key pair.

    Returns:
        KeyPair with a 65-byte public point and a 32-byte private scalar
    """
    return KeyPair.from_private_key(ec.generate_private_key(ec.SECP256R1()))


def generate_vapid_keys() -> dict[str, str]:
    """
    Generate a VAPID key pair for an application server.

    Returns:
        Dict with base64url ``publicKey`` and ``privateKey`` entries
    """
    pair = generate_key_pair()
    return {"publicKey": pair.public_key_b64url, "privateKey": pair.private_key_b64url}


def _as_bytes(value: str | bytes, field: str) -> bytes:
    if isinstance(value, str):
        return b64url_decode(value, field=field)
    return bytes(value)


def validate_public_key(value: str | bytes, *, field: str = "public_key") -> bytes:
    """
    Check that ``value`` is a 65-byte uncompressed P-256 point.

    Args:
        value: base64url string or raw bytes
        field: Name reported in errors

    Returns:
        The decoded key bytes

    Raises:
        InvalidKeyError: If the key has the wrong size or prefix
        FormatError: If a string is not valid base64url
    """
    raw = _as_bytes(value, field)
    if len(raw) != P256_PUBLIC_KEY_SIZE:
        raise InvalidKeyError(
            f"{field} must be {P256_PUBLIC_KEY_SIZE} bytes, got {len(raw)}",
            field=field,
            limit=P256_PUBLIC_KEY_SIZE,
            actual=len(raw),
        )
    if raw[0] != P256_UNCOMPRESSED_PREFIX:
        raise InvalidKeyError(
            f"{field} must be an uncompressed point (0x04 prefix), got 0x{raw[0]:02x}",
            field=field,
            limit=P256_UNCOMPRESSED_PREFIX,
            actual=raw[0],
        )
    return raw


def validate_private_key(value: str | bytes, *, field: str = "private_key") -> bytes:
    """
    Check that ``value`` is a 32-byte P-256 scalar.

    Raises:
        InvalidKeyError: If the key has the wrong size
        FormatError: If a string is not valid base64url
    """
    raw = _as_bytes(value, field)
    if len(raw) != P256_PRIVATE_KEY_SIZE:
        raise InvalidKeyError(
            f"{field} must be {P256_PRIVATE_KEY_SIZE} bytes, got {len(raw)}",
            field=field,
            limit=P256_PRIVATE_KEY_SIZE,
            actual=len(raw),
        )
    return raw


def validate_auth_secret(value: str | bytes, *, field: str = "auth") -> bytes:
    """Check that a subscription auth secret is at least 16 bytes."""
    raw = _as_bytes(value, field)
    if len(raw) < AUTH_SECRET_MIN_SIZE:
        raise InvalidKeyError(
            f"{field} must be at least {AUTH_SECRET_MIN_SIZE} bytes, got {len(raw)}",
            field=field,
            limit=AUTH_SECRET_MIN_SIZE,
            actual=len(raw),
        )
    return raw


def load_public_key(value: str | bytes, *, field: str = "public_key") -> ec.EllipticCurvePublicKey:
    """Validate and load a public point. Points off the curve raise InvalidKeyError."""
    raw = validate_public_key(value, field=field)
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), raw)
    except ValueError as e:
        raise InvalidKeyError(f"{field} is not a point on P-256", field=field, actual=len(raw)) from e


def load_private_key(value: str | bytes, *, field: str = "private_key") -> ec.EllipticCurvePrivateKey:
    """Validate and load a private scalar. Out-of-range scalars raise InvalidKeyError."""
    raw = validate_private_key(value, field=field)
    try:
        return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())
    except ValueError as e:
        raise InvalidKeyError(f"{field} is not a valid P-256 scalar", field=field, actual=len(raw)) from e
