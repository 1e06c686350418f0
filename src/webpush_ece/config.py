"""
Option bags for encryption, VAPID and request assembly.

Every option is an explicit, defaulted field. ``validate()`` checks ranges
and raises InvalidOptionError; nothing is coerced implicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from webpush_ece.constants import (
    DEFAULT_EXPIRATION_SECONDS,
    DEFAULT_RS,
    DEFAULT_TTL,
    MAX_EXPIRATION_SECONDS,
    MAX_RS,
    MIN_RS,
    TOPIC_MAX_LENGTH,
    ContentEncoding,
    Urgency,
)
from webpush_ece.exceptions import InvalidOptionError
from webpush_ece.headers import b64url_validate
from webpush_ece.keys import validate_private_key, validate_public_key
from webpush_ece.vapid import validate_subject

__all__ = [
    "EncryptionOptions",
    "RequestOptions",
    "VapidDetails",
]


def _require_int(name: str, value: Any) -> None:
    # bool is an int subclass; reject it so True never means rs=1
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidOptionError(f"{name} must be an integer", field=name, limit="int", actual=value)


@dataclass(frozen=True)
class EncryptionOptions:
    """Record framing options for the aes128gcm content encoding."""

    rs: int = DEFAULT_RS
    """Record size in bytes, including the delimiter and the 16-byte tag."""

    allow_multiple_records: bool = False
    """RFC 8291 requires a single record; opt in to split larger payloads."""

    final_record_padding: int = 0
    """Zero bytes appended after the delimiter of the final record."""

    content_encoding: ContentEncoding = ContentEncoding.AES_128_GCM

    def validate(self) -> None:
        """
        Check option ranges.

        Raises:
            InvalidOptionError: If any option is out of range
        """
        _require_int("rs", self.rs)
        if not MIN_RS <= self.rs <= MAX_RS:
            raise InvalidOptionError(f"rs must be an integer >= {MIN_RS}", field="rs", limit=MIN_RS, actual=self.rs)
        _require_int("final_record_padding", self.final_record_padding)
        if self.final_record_padding < 0:
            raise InvalidOptionError(
                "final_record_padding must be >= 0",
                field="final_record_padding",
                limit=0,
                actual=self.final_record_padding,
            )
        if not isinstance(self.content_encoding, ContentEncoding):
            raise InvalidOptionError(
                f"Unsupported content encoding: {self.content_encoding}",
                field="content_encoding",
                limit=[e.value for e in ContentEncoding],
                actual=self.content_encoding,
            )


@dataclass(frozen=True)
class VapidDetails:
    """Application server identity used to sign VAPID tokens."""

    subject: str
    """``mailto:`` address or ``https:`` URL of the sender."""

    public_key: str
    """base64url uncompressed P-256 point."""

    private_key: str
    """base64url 32-byte scalar."""

    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS

    max_expiration_seconds: int = MAX_EXPIRATION_SECONDS

    def __repr__(self) -> str:
        # Never render the private key
        return f"VapidDetails(subject={self.subject!r}, public_key={self.public_key!r})"

    def validate(self) -> None:
        """
        Check subject scheme and key shapes.

        Raises:
            InvalidSubjectError: If the subject is not mailto: or https:
            InvalidKeyError: If a key has the wrong size or prefix
            FormatError: If a key is not base64url
        """
        validate_subject(self.subject)
        validate_public_key(self.public_key, field="vapid.public_key")
        validate_private_key(self.private_key, field="vapid.private_key")


@dataclass(frozen=True)
class RequestOptions:
    """Per-message options for request assembly."""

    ttl: int = DEFAULT_TTL
    urgency: Urgency = Urgency.NORMAL
    topic: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    encryption: EncryptionOptions = field(default_factory=EncryptionOptions)

    gcm_api_key: str | None = None
    """Overrides the WebPush-level GCM/FCM key for this request."""

    vapid_details: VapidDetails | None = None
    """Overrides the WebPush-level VAPID identity for this request."""

    disable_vapid: bool = False
    """Send without VAPID even if the WebPush instance has an identity."""

    @property
    def content_encoding(self) -> ContentEncoding:
        return self.encryption.content_encoding

    def validate(self) -> None:
        """
        Check option ranges.

        Raises:
            InvalidOptionError: If any option is out of range
        """
        _require_int("ttl", self.ttl)
        if self.ttl < 0:
            raise InvalidOptionError("TTL must be a number >= 0", field="ttl", limit=0, actual=self.ttl)
        if not isinstance(self.urgency, Urgency):
            raise InvalidOptionError(
                f"Unsupported urgency: {self.urgency}",
                field="urgency",
                limit=[u.value for u in Urgency],
                actual=self.urgency,
            )
        if self.topic:
            if not b64url_validate(self.topic):
                raise InvalidOptionError(
                    "Topic contains invalid characters; must be URL-safe base64 chars",
                    field="topic",
                    limit="base64url",
                    actual=self.topic,
                )
            if len(self.topic) > TOPIC_MAX_LENGTH:
                raise InvalidOptionError(
                    f"Topic must be <= {TOPIC_MAX_LENGTH} characters",
                    field="topic",
                    limit=TOPIC_MAX_LENGTH,
                    actual=len(self.topic),
                )
        if self.gcm_api_key is not None and not self.gcm_api_key:
            raise InvalidOptionError(
                "The GCM/FCM API key should be a non-empty string or None", field="gcm_api_key", actual=""
            )
        self.encryption.validate()
        if self.vapid_details is not None:
            self.vapid_details.validate()
