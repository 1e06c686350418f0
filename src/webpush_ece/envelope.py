"""
Header block for the aes128gcm content encoding (RFC 8188 §2.1).

Header format (start of the HTTP body):
┌──────────┬──────────┬─────────┬──────────────────┬───────────┐
│ Salt     │ rs       │ idlen   │ keyid            │ Records   │
│ (16B)    │ (4B BE)  │ (1B)    │ (idlen B)        │ (...)     │
└──────────┴──────────┴─────────┴──────────────────┴───────────┘

For Web Push (RFC 8291 §4) the keyid is the application server's ephemeral
public key, so idlen is always 65.
"""

from dataclasses import dataclass

from webpush_ece.constants import (
    HEADER_IDLEN_SIZE,
    HEADER_PREFIX_SIZE,
    HEADER_RS_SIZE,
    HEADER_SALT_SIZE,
    MIN_RS,
    P256_PUBLIC_KEY_SIZE,
)
from webpush_ece.exceptions import DecryptionError, InvalidOptionError

__all__ = [
    "ContentCodingHeader",
    "encode_header",
    "parse_header",
]


@dataclass(frozen=True)
class ContentCodingHeader:
    """Parsed aes128gcm header block."""

    salt: bytes
    rs: int
    keyid: bytes

    @property
    def size(self) -> int:
        """Bytes occupied by the header block on the wire."""
        return HEADER_PREFIX_SIZE + len(self.keyid)

    def validate(self) -> None:
        """
        Validate that the header describes a Web Push message.

        Raises:
            DecryptionError: If rs is too small or keyid is not a P-256 point
        """
        if self.rs < MIN_RS:
            raise DecryptionError(
                f"Record size too small: {self.rs} (minimum {MIN_RS})", field="rs", limit=MIN_RS, actual=self.rs
            )
        if len(self.keyid) != P256_PUBLIC_KEY_SIZE:
            raise DecryptionError(
                f"Unexpected keyid length: {len(self.keyid)}",
                field="idlen",
                limit=P256_PUBLIC_KEY_SIZE,
                actual=len(self.keyid),
            )


def encode_header(salt: bytes, rs: int, keyid: bytes) -> bytes:
    """
    Encode the aes128gcm header block.

    Args:
        salt: 16-byte random salt
        rs: Record size (uint32)
        keyid: Sender public key (at most 255 bytes)

    Returns:
        salt || rs || idlen || keyid
    """
    if len(salt) != HEADER_SALT_SIZE:
        raise InvalidOptionError(
            f"salt must be {HEADER_SALT_SIZE} bytes", field="salt", limit=HEADER_SALT_SIZE, actual=len(salt)
        )
    if len(keyid) > 0xFF:
        raise InvalidOptionError("keyid must be at most 255 bytes", field="keyid", limit=0xFF, actual=len(keyid))
    return (
        salt
        + rs.to_bytes(HEADER_RS_SIZE, "big")
        + len(keyid).to_bytes(HEADER_IDLEN_SIZE, "big")
        + keyid
    )


def parse_header(body: bytes) -> ContentCodingHeader:
    """
    Parse the aes128gcm header block from the start of a body.

    Args:
        body: Encoded body, at least the header block

    Returns:
        Parsed ContentCodingHeader

    Raises:
        DecryptionError: If body is shorter than the header it announces
    """
    if len(body) < HEADER_PREFIX_SIZE:
        raise DecryptionError(
            f"Body too short: {len(body)} bytes (minimum {HEADER_PREFIX_SIZE})",
            field="body",
            limit=HEADER_PREFIX_SIZE,
            actual=len(body),
        )

    salt = bytes(body[:HEADER_SALT_SIZE])
    rs_end = HEADER_SALT_SIZE + HEADER_RS_SIZE
    rs = int.from_bytes(body[HEADER_SALT_SIZE:rs_end], "big")
    idlen = body[rs_end]
    if len(body) < HEADER_PREFIX_SIZE + idlen:
        raise DecryptionError(
            f"Body too short for keyid: {len(body)} bytes (need {HEADER_PREFIX_SIZE + idlen})",
            field="body",
            limit=HEADER_PREFIX_SIZE + idlen,
            actual=len(body),
        )
    keyid = bytes(body[HEADER_PREFIX_SIZE : HEADER_PREFIX_SIZE + idlen])
    return ContentCodingHeader(salt=salt, rs=rs, keyid=keyid)
