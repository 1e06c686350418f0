"""
HTTP header utilities for Web Push.

Uses base64url encoding (RFC 4648 §5) for every key, salt and token segment
that travels in a header or a subscription object.
"""

import base64
import binascii
import re

from webpush_ece.exceptions import FormatError

__all__ = [
    "b64url_decode",
    "b64url_encode",
    "b64url_validate",
    "merge_header_params",
]

_B64URL_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")
_B64_PAD_SIZE = 4  # Base64 padding block size


def b64url_encode(data: bytes) -> str:
    """
    Encode bytes to base64url string without padding.

    Args:
        data: Raw bytes to encode

    Returns:
        base64url encoded string (no padding)
    """
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_validate(s: str) -> bool:
    """Return True if every character of ``s`` is in the base64url alphabet."""
    return _B64URL_ALPHABET.fullmatch(s) is not None


def b64url_decode(s: str | bytes, *, field: str = "value") -> bytes:
    """
    Decode base64url string to bytes.

    Handles missing padding automatically.

    Args:
        s: base64url encoded string (with or without padding)
        field: Name reported in FormatError

    Returns:
        Decoded bytes

    Raises:
        FormatError: If the input contains characters outside the alphabet
    """
    if isinstance(s, bytes):
        try:
            s = s.decode("ascii")
        except UnicodeDecodeError as e:
            raise FormatError(f"{field} is not ASCII", field=field, actual=s) from e

    unpadded = s.rstrip("=")
    if not b64url_validate(unpadded):
        raise FormatError(f"{field} contains characters outside the base64url alphabet", field=field, actual=s)
    if len(unpadded) % _B64_PAD_SIZE == 1:
        raise FormatError(f"{field} has an impossible base64 length", field=field, actual=s)

    # Add padding if needed (base64 uses 4-byte blocks)
    padding = len(unpadded) % _B64_PAD_SIZE
    if padding:
        unpadded += "=" * (_B64_PAD_SIZE - padding)
    try:
        return base64.urlsafe_b64decode(unpadded)
    except binascii.Error as e:
        raise FormatError(f"{field} is not valid base64url", field=field, actual=s) from e


def merge_header_params(existing: str | None, addition: str) -> str:
    """
    Append a ``name=value`` parameter to a semicolon-separated header value.

    Used for Crypto-Key, which carries both the encryption ``dh`` and the
    VAPID ``p256ecdsa`` parameters under the legacy content encoding.
    """
    if existing:
        return f"{existing}; {addition}"
    return addition
