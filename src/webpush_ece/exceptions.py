"""
Exception hierarchy for webpush_ece.

All errors inherit from WebPushError for easy catching. Validation errors
carry the offending field, the limit that was violated and the actual value,
so callers can log a failure without re-deriving internal state.
"""

from typing import Any


class WebPushError(Exception):
    """Base exception for all webpush_ece errors."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        limit: Any = None,
        actual: Any = None,
    ) -> None:
        self.field = field
        self.limit = limit
        self.actual = actual
        super().__init__(message)


class FormatError(WebPushError):
    """Encoded string input is not valid URL-safe base64."""


class InvalidKeyError(WebPushError):
    """Key material is malformed or has the wrong size.

    Possible causes:
    - Public key is not a 65-byte uncompressed P-256 point
    - Private key is not a 32-byte scalar
    - Point is not on the curve
    - Auth secret is shorter than 16 bytes
    """


class InvalidSubjectError(WebPushError):
    """VAPID subject does not use an accepted scheme (https: or mailto:)."""


class InvalidOptionError(WebPushError):
    """A caller-supplied option is out of range or inconsistent."""


class PayloadTooLargeError(WebPushError):
    """Payload does not fit in the allowed number of records."""


class CryptoError(WebPushError):
    """A cryptographic primitive failed."""


class DecryptionError(CryptoError):
    """Failed to decrypt an encoded body.

    Possible causes:
    - Wrong subscriber key or auth secret
    - Corrupted or truncated body
    - Invalid authentication tag
    - Missing or misplaced record delimiter
    """


class SigningError(WebPushError):
    """Failed to produce a VAPID signature."""


class TokenVerificationError(SigningError):
    """A VAPID token is malformed or its signature does not verify."""


class PushServiceError(WebPushError):
    """Push service answered with a non-success status."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"Push service returned {status}", field="status", limit="2xx", actual=status)
