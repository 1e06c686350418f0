"""
Push request assembly.

Turns a subscription, a payload and per-message options into the endpoint,
headers and body of a push message. Transport is left to the caller (see
webpush_ece.client for an aiohttp sender).

Usage:
    from webpush_ece.config import VapidDetails
    from webpush_ece.request import Subscription, WebPush

    web_push = WebPush(vapid=VapidDetails(subject, public_key, private_key))
    request = web_push.generate_request(Subscription.from_dict(sub_json), "hello")
    httpx.post(request.endpoint, headers=request.headers, content=request.body)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from webpush_ece._logging import get_logger
from webpush_ece.config import RequestOptions, VapidDetails
from webpush_ece.constants import (
    CONTENT_TYPE_OCTET_STREAM,
    FCM_ENDPOINT_PREFIX,
    FCM_HOST,
    GCM_ENDPOINT_PREFIX,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_ENCODING,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_TYPE,
    HEADER_CRYPTO_KEY,
    HEADER_ENCRYPTION,
    HEADER_TOPIC,
    HEADER_TTL,
    HEADER_URGENCY,
    ContentEncoding,
)
from webpush_ece.ece import Payload, encrypt_aes128gcm, encrypt_aesgcm, normalize_payload
from webpush_ece.exceptions import InvalidOptionError
from webpush_ece.headers import merge_header_params
from webpush_ece.vapid import get_vapid_headers

__all__ = [
    "AuthMethod",
    "Subscription",
    "WebPush",
    "WebPushRequest",
    "get_audience",
    "is_fcm_endpoint",
    "is_gcm_endpoint",
]

_logger = get_logger(__name__)


class AuthMethod(str, Enum):
    """How a generated request authenticates to the push service."""

    VAPID = "vapid"
    API_KEY = "api-key"  # GCM/FCM server key
    NONE = "none"  # No usable credential for this endpoint


@dataclass(frozen=True)
class Subscription:
    """Push subscription as registered by the browser."""

    endpoint: str
    p256dh: str | None = None
    auth: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Subscription:
        """Build from the browser ``PushSubscription.toJSON()`` shape."""
        keys = data.get("keys") or {}
        return cls(endpoint=data.get("endpoint", ""), p256dh=keys.get("p256dh"), auth=keys.get("auth"))

    @property
    def has_keys(self) -> bool:
        return bool(self.p256dh) and bool(self.auth)


@dataclass(frozen=True)
class WebPushRequest:
    """A fully assembled push message."""

    endpoint: str
    headers: dict[str, str]
    body: bytes | None
    auth_method: AuthMethod
    method: str = "POST"


def is_gcm_endpoint(endpoint: str) -> bool:
    """Legacy GCM endpoints only accept API-key auth."""
    return endpoint.startswith(GCM_ENDPOINT_PREFIX)


def is_fcm_endpoint(endpoint: str) -> bool:
    return endpoint.startswith(FCM_ENDPOINT_PREFIX) or FCM_HOST in endpoint


def get_audience(endpoint: str) -> str:
    """Origin of the push service, used as the VAPID ``aud`` claim."""
    parsed = urlparse(endpoint)
    return f"{parsed.scheme}://{parsed.netloc}"


class WebPush:
    """
    Push request builder bound to an application server identity.

    Example:
        web_push = WebPush(vapid=VapidDetails("mailto:ops@example.com", pub, priv))
        request = web_push.generate_request(subscription, b"hello")
    """

    def __init__(self, vapid: VapidDetails | None = None, gcm_api_key: str | None = None) -> None:
        """
        Initialize the builder.

        Args:
            vapid: Default VAPID identity, validated eagerly
            gcm_api_key: Default GCM/FCM server key

        Raises:
            InvalidSubjectError: If the VAPID subject is not mailto: or https:
            InvalidKeyError: If a VAPID key is malformed
            InvalidOptionError: If gcm_api_key is an empty string
        """
        if vapid is not None:
            vapid.validate()
        if gcm_api_key is not None and not gcm_api_key:
            raise InvalidOptionError(
                "The GCM/FCM API key should be a non-empty string or None", field="gcm_api_key", actual=""
            )
        self.vapid = vapid
        self.gcm_api_key = gcm_api_key

    def generate_request(
        self,
        subscription: Subscription,
        payload: Payload = None,
        options: RequestOptions | None = None,
    ) -> WebPushRequest:
        """
        Assemble endpoint, headers and body for one push message.

        Args:
            subscription: Target subscription
            payload: Message payload; None or empty sends a payload-less push
            options: TTL, urgency, topic, encryption and auth overrides

        Returns:
            WebPushRequest; ``auth_method`` is NONE when no credential applies

        Raises:
            InvalidOptionError: If an option or the subscription is invalid
            InvalidKeyError: If a key is malformed
            PayloadTooLargeError: If the payload does not fit the record policy
        """
        options = options or RequestOptions()
        if not isinstance(subscription.endpoint, str) or not subscription.endpoint:
            raise InvalidOptionError(
                "You must pass a subscription with a valid endpoint URL", field="endpoint", actual=subscription.endpoint
            )
        options.validate()

        headers: dict[str, str] = {
            HEADER_TTL: str(options.ttl),
            HEADER_URGENCY: options.urgency.value,
            **options.headers,
        }
        if options.topic:
            headers[HEADER_TOPIC] = options.topic

        body = self._encrypt(subscription, normalize_payload(payload), options, headers)
        auth_method = self._authenticate(subscription.endpoint, options, headers)

        _logger.debug(
            "Request generated: host=%s encoding=%s auth=%s body_size=%d",
            urlparse(subscription.endpoint).netloc,
            options.content_encoding.value,
            auth_method.value,
            len(body) if body else 0,
        )
        return WebPushRequest(endpoint=subscription.endpoint, headers=headers, body=body, auth_method=auth_method)

    def _encrypt(
        self,
        subscription: Subscription,
        data: bytes,
        options: RequestOptions,
        headers: dict[str, str],
    ) -> bytes | None:
        """Encrypt the payload and set the content headers."""
        if not data:
            headers[HEADER_CONTENT_LENGTH] = "0"
            return None
        p256dh, auth = subscription.p256dh, subscription.auth
        if not p256dh or not auth:
            raise InvalidOptionError(
                "To send a payload, the subscription must include 'keys.p256dh' and 'keys.auth'",
                field="subscription.keys",
            )

        headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_OCTET_STREAM
        if options.content_encoding == ContentEncoding.AES_128_GCM:
            body = encrypt_aes128gcm(data, p256dh, auth, options.encryption)
        else:
            legacy = encrypt_aesgcm(data, p256dh, auth)
            body = legacy.ciphertext
            headers[HEADER_ENCRYPTION] = legacy.encryption_header
            headers[HEADER_CRYPTO_KEY] = legacy.crypto_key_header
        headers[HEADER_CONTENT_ENCODING] = options.content_encoding.value
        headers[HEADER_CONTENT_LENGTH] = str(len(body))
        return body

    def _authenticate(self, endpoint: str, options: RequestOptions, headers: dict[str, str]) -> AuthMethod:
        """Pick the auth method for the endpoint and set Authorization."""
        api_key = options.gcm_api_key or self.gcm_api_key
        vapid = None if options.disable_vapid else (options.vapid_details or self.vapid)

        if is_gcm_endpoint(endpoint):
            if not api_key:
                return AuthMethod.NONE
            headers[HEADER_AUTHORIZATION] = f"key={api_key}"
            return AuthMethod.API_KEY

        if vapid is not None:
            vapid_headers = get_vapid_headers(
                get_audience(endpoint),
                vapid.subject,
                vapid.public_key,
                vapid.private_key,
                options.content_encoding,
                expiration_seconds=vapid.expiration_seconds,
                max_expiration_seconds=vapid.max_expiration_seconds,
            )
            headers[HEADER_AUTHORIZATION] = vapid_headers.authorization
            if vapid_headers.crypto_key is not None:
                existing = headers.get(HEADER_CRYPTO_KEY)
                headers[HEADER_CRYPTO_KEY] = merge_header_params(existing, vapid_headers.crypto_key)
            return AuthMethod.VAPID

        if is_fcm_endpoint(endpoint) and api_key:
            headers[HEADER_AUTHORIZATION] = f"key={api_key}"
            return AuthMethod.API_KEY

        return AuthMethod.NONE
