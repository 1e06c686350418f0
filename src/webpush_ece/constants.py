"""
Protocol constants for Web Push message encryption and VAPID.

References:
- RFC 8188: Encrypted Content-Encoding for HTTP (aes128gcm)
- RFC 8291: Message Encryption for Web Push
- RFC 8292: Voluntary Application Server Identification (VAPID)
- draft-ietf-webpush-encryption-04 (aesgcm, legacy)
"""

from enum import Enum

# =============================================================================
# Content encodings
# =============================================================================


class ContentEncoding(str, Enum):
    """Supported Content-Encoding values."""

    AES_128_GCM = "aes128gcm"  # RFC 8188 / RFC 8291
    AES_GCM = "aesgcm"  # draft-ietf-webpush-encryption-04


class Urgency(str, Enum):
    """Urgency header values (RFC 8030 §5.3)."""

    VERY_LOW = "very-low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


# =============================================================================
# Primitive sizes
# =============================================================================

P256_PUBLIC_KEY_SIZE: int = 65
"""Uncompressed P-256 point: 0x04 || X(32) || Y(32)."""

P256_PRIVATE_KEY_SIZE: int = 32

P256_UNCOMPRESSED_PREFIX: int = 0x04

P256_COORDINATE_SIZE: int = 32
"""Each half of a raw ES256 signature (r, s)."""

AUTH_SECRET_MIN_SIZE: int = 16

SALT_SIZE: int = 16

AES_128_GCM_KEY_SIZE: int = 16

AES_GCM_NONCE_SIZE: int = 12

AES_GCM_TAG_SIZE: int = 16

SHA256_SIZE: int = 32

# =============================================================================
# aes128gcm framing (RFC 8188)
# =============================================================================

DEFAULT_RS: int = 4096

RECORD_DELIMITER_SIZE: int = 1

RECORD_OVERHEAD: int = RECORD_DELIMITER_SIZE + AES_GCM_TAG_SIZE
"""Per-record bytes that are not payload: delimiter + tag."""

MIN_RS: int = RECORD_OVERHEAD + 1
"""Smallest record size that can carry one byte of data (18)."""

MAX_RS: int = 0xFFFFFFFF
"""rs is a uint32 on the wire."""

DELIMITER_NON_FINAL: int = 0x01

DELIMITER_FINAL: int = 0x02

HEADER_SALT_SIZE: int = SALT_SIZE
HEADER_RS_SIZE: int = 4
HEADER_IDLEN_SIZE: int = 1
HEADER_PREFIX_SIZE: int = HEADER_SALT_SIZE + HEADER_RS_SIZE + HEADER_IDLEN_SIZE
"""salt || rs || idlen, without the keyid (21)."""

HEADER_SIZE: int = HEADER_PREFIX_SIZE + P256_PUBLIC_KEY_SIZE
"""Full Web Push header block including the 65-byte keyid (86)."""

MAX_RECORD_COUNTER: int = (1 << 96) - 1
"""Record sequence numbers are XORed into the 96-bit nonce."""

# =============================================================================
# aesgcm framing (legacy)
# =============================================================================

LEGACY_RS: int = 4096

LEGACY_PAD_SIZE: int = 2
"""uint16 padding-length prefix in each aesgcm record."""

# =============================================================================
# Key derivation labels
# =============================================================================

WEBPUSH_INFO_LABEL: bytes = b"WebPush: info\x00"
"""RFC 8291 §3.3 key_info prefix, followed by ua_public || as_public."""

AES128GCM_CEK_INFO: bytes = b"Content-Encoding: aes128gcm\x00"

AES128GCM_NONCE_INFO: bytes = b"Content-Encoding: nonce\x00"

LEGACY_AUTH_INFO: bytes = b"Content-Encoding: auth\x00"

LEGACY_CEK_INFO: bytes = b"Content-Encoding: aesgcm\x00"

LEGACY_NONCE_INFO: bytes = b"Content-Encoding: nonce\x00"

LEGACY_CONTEXT_LABEL: bytes = b"P-256\x00"
"""aesgcm context prefix, followed by length-prefixed ua_public and as_public."""

# =============================================================================
# VAPID (RFC 8292)
# =============================================================================

VAPID_ALGORITHM: str = "ES256"

VAPID_TOKEN_TYPE: str = "JWT"

DEFAULT_EXPIRATION_SECONDS: int = 12 * 60 * 60

MAX_EXPIRATION_SECONDS: int = 24 * 60 * 60

SUBJECT_SCHEMES: tuple[str, ...] = ("https", "mailto")

AUDIENCE_SCHEMES: tuple[str, ...] = ("https", "http")

# =============================================================================
# Request assembly
# =============================================================================

DEFAULT_TTL: int = 4 * 7 * 24 * 60 * 60
"""Four weeks, in seconds."""

TOPIC_MAX_LENGTH: int = 32

GCM_ENDPOINT_PREFIX: str = "https://android.googleapis.com/gcm/send"

FCM_ENDPOINT_PREFIX: str = "https://fcm.googleapis.com/fcm/send"

FCM_HOST: str = "fcm.googleapis.com"

HEADER_AUTHORIZATION: str = "Authorization"
HEADER_CONTENT_ENCODING: str = "Content-Encoding"
HEADER_CONTENT_LENGTH: str = "Content-Length"
HEADER_CONTENT_TYPE: str = "Content-Type"
HEADER_CRYPTO_KEY: str = "Crypto-Key"
HEADER_ENCRYPTION: str = "Encryption"
HEADER_TOPIC: str = "Topic"
HEADER_TTL: str = "TTL"
HEADER_URGENCY: str = "Urgency"

CONTENT_TYPE_OCTET_STREAM: str = "application/octet-stream"
