"""
Web Push message encryption and VAPID authentication.

This library implements the cryptographic core of the Web Push protocol:
RFC 8291 payload encryption in the RFC 8188 aes128gcm content encoding (plus
the legacy aesgcm encoding), and RFC 8292 VAPID tokens for sender
authentication.

Usage (encryption only):
    from webpush_ece import encrypt_aes128gcm

    body = encrypt_aes128gcm(b"hello", subscription["keys"]["p256dh"], subscription["keys"]["auth"])

Usage (full request):
    from webpush_ece import Subscription, VapidDetails, WebPush

    web_push = WebPush(vapid=VapidDetails("mailto:ops@example.com", public_key, private_key))
    request = web_push.generate_request(Subscription.from_dict(subscription), "hello")

Usage (send - aiohttp):
    from webpush_ece.client import WebPushClientSession

    async with WebPushClientSession(web_push) as session:
        await session.notify(Subscription.from_dict(subscription), "hello")
"""

from webpush_ece.config import EncryptionOptions, RequestOptions, VapidDetails
from webpush_ece.constants import DEFAULT_RS, DEFAULT_TTL, MIN_RS, ContentEncoding, Urgency
from webpush_ece.ece import decrypt_aes128gcm, decrypt_aesgcm, encrypt_aes128gcm, encrypt_aesgcm
from webpush_ece.exceptions import (
    CryptoError,
    DecryptionError,
    FormatError,
    InvalidKeyError,
    InvalidOptionError,
    InvalidSubjectError,
    PayloadTooLargeError,
    PushServiceError,
    SigningError,
    TokenVerificationError,
    WebPushError,
)
from webpush_ece.keys import KeyPair, generate_key_pair, generate_vapid_keys
from webpush_ece.request import AuthMethod, Subscription, WebPush, WebPushRequest
from webpush_ece.vapid import VapidHeaders, get_vapid_headers, verify_token

__all__ = [
    # Constants
    "DEFAULT_RS",
    "DEFAULT_TTL",
    "MIN_RS",
    "ContentEncoding",
    "Urgency",
    # Options
    "EncryptionOptions",
    "RequestOptions",
    "VapidDetails",
    # Encryption
    "decrypt_aes128gcm",
    "decrypt_aesgcm",
    "encrypt_aes128gcm",
    "encrypt_aesgcm",
    # Keys
    "KeyPair",
    "generate_key_pair",
    "generate_vapid_keys",
    # VAPID
    "VapidHeaders",
    "get_vapid_headers",
    "verify_token",
    # Requests
    "AuthMethod",
    "Subscription",
    "WebPush",
    "WebPushRequest",
    # Exceptions
    "CryptoError",
    "DecryptionError",
    "FormatError",
    "InvalidKeyError",
    "InvalidOptionError",
    "InvalidSubjectError",
    "PayloadTooLargeError",
    "PushServiceError",
    "SigningError",
    "TokenVerificationError",
    "WebPushError",
]

__version__ = "0.1.0"
