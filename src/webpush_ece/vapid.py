"""
VAPID sender authentication (RFC 8292).

A VAPID token is a compact JWT signed with ES256:
    b64url(header) "." b64url(claims) "." b64url(r || s)

The signature is always the raw 64-byte form (r and s each left-padded to
32 bytes), never DER.

Header values depend on the content encoding:
    aes128gcm  Authorization: vapid t=<token>, k=<public key>
    aesgcm     Authorization: WebPush <token>
               Crypto-Key:    p256ecdsa=<public key>
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from webpush_ece._logging import get_logger
from webpush_ece.constants import (
    AUDIENCE_SCHEMES,
    DEFAULT_EXPIRATION_SECONDS,
    MAX_EXPIRATION_SECONDS,
    P256_COORDINATE_SIZE,
    SUBJECT_SCHEMES,
    VAPID_ALGORITHM,
    VAPID_TOKEN_TYPE,
    ContentEncoding,
)
from webpush_ece.exceptions import (
    FormatError,
    InvalidOptionError,
    InvalidSubjectError,
    SigningError,
    TokenVerificationError,
)
from webpush_ece.headers import b64url_decode, b64url_encode
from webpush_ece.keys import load_private_key, load_public_key, validate_public_key

__all__ = [
    "VapidHeaders",
    "build_claims",
    "get_vapid_headers",
    "sign_token",
    "validate_audience",
    "validate_subject",
    "verify_token",
]

_logger = get_logger(__name__)

_SIGNATURE_SIZE = 2 * P256_COORDINATE_SIZE
_TOKEN_SEGMENTS = 3


def validate_subject(subject: str) -> str:
    """
    Check that the subject is a ``mailto:`` address or an ``https:`` URL.

    Raises:
        InvalidSubjectError: If the scheme is missing or not accepted
    """
    if not isinstance(subject, str) or not subject:
        raise InvalidSubjectError("VAPID subject must be a non-empty string", field="subject", actual=subject)
    scheme = urlparse(subject).scheme.lower()
    if scheme not in SUBJECT_SCHEMES:
        raise InvalidSubjectError(
            f"VAPID subject must be a mailto: or https: URI, got {subject!r}",
            field="subject",
            limit=list(SUBJECT_SCHEMES),
            actual=subject,
        )
    return subject


def validate_audience(audience: str) -> str:
    """
    Check that the audience is the origin of a push service URL.

    Raises:
        InvalidOptionError: If the audience is not an http(s) origin
    """
    parsed = urlparse(audience) if isinstance(audience, str) else None
    if parsed is None or parsed.scheme not in AUDIENCE_SCHEMES or not parsed.netloc:
        raise InvalidOptionError(
            "VAPID audience must be the origin of the push service",
            field="audience",
            limit=list(AUDIENCE_SCHEMES),
            actual=audience,
        )
    return audience


def build_claims(
    audience: str,
    subject: str,
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
    max_expiration_seconds: int = MAX_EXPIRATION_SECONDS,
    *,
    now: float | None = None,
) -> dict[str, Any]:
    """
    Build the VAPID claims set.

    Args:
        audience: Push service origin (``aud``)
        subject: Sender contact (``sub``)
        expiration_seconds: Token lifetime from now
        max_expiration_seconds: Upper bound on the lifetime, at most 24 hours
        now: Issue time as a UNIX timestamp; current time when omitted

    Returns:
        ``{"aud": ..., "exp": ..., "sub": ...}``

    Raises:
        InvalidSubjectError: If the subject scheme is not accepted
        InvalidOptionError: If the audience or expiration is out of range
    """
    validate_audience(audience)
    validate_subject(subject)
    if max_expiration_seconds > MAX_EXPIRATION_SECONDS:
        raise InvalidOptionError(
            f"max_expiration_seconds must be <= {MAX_EXPIRATION_SECONDS}",
            field="max_expiration_seconds",
            limit=MAX_EXPIRATION_SECONDS,
            actual=max_expiration_seconds,
        )
    if not 0 < expiration_seconds <= max_expiration_seconds:
        raise InvalidOptionError(
            f"expiration_seconds must be in (0, {max_expiration_seconds}]",
            field="expiration_seconds",
            limit=max_expiration_seconds,
            actual=expiration_seconds,
        )
    issued_at = int(time.time() if now is None else now)
    return {"aud": audience, "exp": issued_at + expiration_seconds, "sub": subject}


def _json_segment(value: dict[str, Any]) -> str:
    return b64url_encode(json.dumps(value, separators=(",", ":")).encode("utf-8"))


def sign_token(claims: dict[str, Any], private_key: str | bytes | ec.EllipticCurvePrivateKey) -> str:
    """
    Sign a claims set as a compact ES256 JWT.

    Args:
        claims: VAPID claims
        private_key: base64url or raw 32-byte scalar, or a loaded key

    Returns:
        header.claims.signature

    Raises:
        InvalidKeyError: If the private key is malformed
        SigningError: If signing fails
    """
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        private_key = load_private_key(private_key, field="private_key")

    header = {"typ": VAPID_TOKEN_TYPE, "alg": VAPID_ALGORITHM}
    signing_input = f"{_json_segment(header)}.{_json_segment(claims)}"
    try:
        der = private_key.sign(signing_input.encode("ascii"), ec.ECDSA(hashes.SHA256()))
    except ValueError as e:
        raise SigningError("ES256 signing failed") from e

    r, s = decode_dss_signature(der)
    signature = r.to_bytes(P256_COORDINATE_SIZE, "big") + s.to_bytes(P256_COORDINATE_SIZE, "big")
    return f"{signing_input}.{b64url_encode(signature)}"


def _decode_segment(segment: str, field: str) -> bytes:
    try:
        raw = b64url_decode(segment, field=field)
    except FormatError as e:
        raise TokenVerificationError(f"Token {field} is not base64url", field=field) from e
    # Reject non-canonical encodings (stray trailing bits)
    if b64url_encode(raw) != segment:
        raise TokenVerificationError(f"Token {field} is not canonical base64url", field=field)
    return raw


def verify_token(token: str, public_key: str | bytes) -> dict[str, Any]:
    """
    Verify a VAPID token and return its claims.

    Raises:
        InvalidKeyError: If the public key is malformed
        TokenVerificationError: If the token is malformed or the signature does not verify
    """
    key = load_public_key(public_key, field="public_key")
    segments = token.split(".")
    if len(segments) != _TOKEN_SEGMENTS:
        raise TokenVerificationError(
            "Token must have three segments", field="token", limit=_TOKEN_SEGMENTS, actual=len(segments)
        )
    header_segment, claims_segment, signature_segment = segments

    try:
        header = json.loads(_decode_segment(header_segment, "header"))
        claims = json.loads(_decode_segment(claims_segment, "claims"))
    except ValueError as e:
        raise TokenVerificationError("Token segment is not JSON") from e
    if not isinstance(header, dict) or header.get("alg") != VAPID_ALGORITHM:
        raise TokenVerificationError("Unsupported token algorithm", field="alg", limit=VAPID_ALGORITHM)
    if not isinstance(claims, dict):
        raise TokenVerificationError("Token claims must be an object", field="claims")

    signature = _decode_segment(signature_segment, "signature")
    if len(signature) != _SIGNATURE_SIZE:
        raise TokenVerificationError(
            "Signature must be 64 bytes", field="signature", limit=_SIGNATURE_SIZE, actual=len(signature)
        )
    der = encode_dss_signature(
        int.from_bytes(signature[:P256_COORDINATE_SIZE], "big"),
        int.from_bytes(signature[P256_COORDINATE_SIZE:], "big"),
    )
    try:
        key.verify(der, f"{header_segment}.{claims_segment}".encode("ascii"), ec.ECDSA(hashes.SHA256()))
    except InvalidSignature as e:
        raise TokenVerificationError("Signature verification failed", field="signature") from e
    return claims


@dataclass(frozen=True)
class VapidHeaders:
    """Header values produced for one request."""

    authorization: str
    crypto_key: str | None = None
    """``p256ecdsa`` parameter, only for the aesgcm encoding."""

    def as_dict(self) -> dict[str, str]:
        headers = {"Authorization": self.authorization}
        if self.crypto_key is not None:
            headers["Crypto-Key"] = self.crypto_key
        return headers


def get_vapid_headers(
    audience: str,
    subject: str,
    public_key: str | bytes,
    private_key: str | bytes,
    content_encoding: ContentEncoding = ContentEncoding.AES_128_GCM,
    *,
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
    max_expiration_seconds: int = MAX_EXPIRATION_SECONDS,
    now: float | None = None,
) -> VapidHeaders:
    """
    Build VAPID authentication header values.

    Args:
        audience: Push service origin
        subject: ``mailto:`` or ``https:`` contact
        public_key: VAPID public key (base64url or raw 65 bytes)
        private_key: VAPID private key (base64url or raw 32 bytes)
        content_encoding: Selects the header layout
        expiration_seconds: Token lifetime
        max_expiration_seconds: Upper bound on the lifetime
        now: Issue time override

    Returns:
        VapidHeaders with Authorization and, for aesgcm, Crypto-Key

    Raises:
        InvalidSubjectError: If the subject scheme is not accepted
        InvalidOptionError: If the encoding, audience or expiration is invalid
        InvalidKeyError: If a key is malformed
        SigningError: If signing fails
    """
    if not isinstance(content_encoding, ContentEncoding):
        raise InvalidOptionError(
            f"Unsupported content encoding: {content_encoding}",
            field="content_encoding",
            limit=[e.value for e in ContentEncoding],
            actual=content_encoding,
        )
    public_raw = validate_public_key(public_key, field="public_key")
    claims = build_claims(audience, subject, expiration_seconds, max_expiration_seconds, now=now)
    token = sign_token(claims, private_key)
    key_b64 = b64url_encode(public_raw)
    _logger.debug("VAPID token signed: audience=%s encoding=%s exp=%d", audience, content_encoding.value, claims["exp"])

    if content_encoding == ContentEncoding.AES_GCM:
        return VapidHeaders(authorization=f"WebPush {token}", crypto_key=f"p256ecdsa={key_b64}")
    return VapidHeaders(authorization=f"vapid t={token}, k={key_b64}")
