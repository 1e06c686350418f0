"""Shared test fixtures for webpush_ece tests."""

import logging
import secrets
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from webpush_ece.config import VapidDetails
from webpush_ece.headers import b64url_encode
from webpush_ece.keys import generate_vapid_keys
from webpush_ece.request import Subscription, WebPush

# Enable webpush_ece debug logging during tests
logging.getLogger("webpush_ece").setLevel(logging.DEBUG)
logging.getLogger("webpush_ece").addHandler(logging.StreamHandler())


# === Record Layout Helpers ===

HEADER_SIZE = 86  # salt(16) + rs(4) + idlen(1) + keyid(65)


def split_records(body: bytes) -> list[bytes]:
    """Split an aes128gcm body into its encrypted records using the header rs."""
    rs = int.from_bytes(body[16:20], "big")
    records = body[HEADER_SIZE:]
    return [records[offset : offset + rs] for offset in range(0, len(records), rs)]


# === Key Fixtures ===


@dataclass(frozen=True)
class SubscriberKeys:
    """Browser-side key material for one subscription."""

    private_key: bytes
    public_key: bytes
    auth_secret: bytes

    @property
    def p256dh(self) -> str:
        return b64url_encode(self.public_key)

    @property
    def auth(self) -> str:
        return b64url_encode(self.auth_secret)


def make_subscriber_keys(auth_size: int = 16) -> SubscriberKeys:
    """Generate subscriber keys the way a browser does (independent of the library)."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return SubscriberKeys(
        private_key=private_key.private_numbers().private_value.to_bytes(32, "big"),
        public_key=private_key.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        ),
        auth_secret=secrets.token_bytes(auth_size),
    )


@pytest.fixture
def subscriber() -> SubscriberKeys:
    """Fresh subscriber key pair and auth secret."""
    return make_subscriber_keys()


@pytest.fixture
def subscription(subscriber: SubscriberKeys) -> Subscription:
    """Subscription with keys on a generic push service."""
    return Subscription(endpoint="https://push.example/send/abc", p256dh=subscriber.p256dh, auth=subscriber.auth)


@pytest.fixture(scope="session")
def vapid_keys() -> dict[str, str]:
    """VAPID key pair, base64url encoded.

    Session-scoped: one key pair shared across all tests.
    """
    return generate_vapid_keys()


@pytest.fixture
def vapid_details(vapid_keys: dict[str, str]) -> VapidDetails:
    return VapidDetails(
        subject="mailto:test@example.com",
        public_key=vapid_keys["publicKey"],
        private_key=vapid_keys["privateKey"],
    )


@pytest.fixture
def web_push(vapid_details: VapidDetails) -> WebPush:
    """WebPush with VAPID and a GCM key, like a typical server config."""
    return WebPush(vapid=vapid_details, gcm_api_key="test-gcm-key")


# === Push Service Fixture ===


@dataclass
class ReceivedPush:
    path: str
    headers: Mapping[str, str]
    """Case-insensitive copy of the request headers."""

    body: bytes


@dataclass
class PushService:
    """Local push service that answers with the status named in the path."""

    base_url: str
    received: list[ReceivedPush] = field(default_factory=list)

    def endpoint(self, status: int = 201) -> str:
        return f"{self.base_url}/push/{status}"


@pytest_asyncio.fixture
async def push_service() -> AsyncIterator[PushService]:
    """aiohttp server standing in for a push service.

    POST /push/{status} records the request and replies with that status.
    """
    service = PushService(base_url="")

    async def handler(request: web.Request) -> web.Response:
        service.received.append(ReceivedPush(request.path, request.headers.copy(), await request.read()))
        status = int(request.match_info["status"])
        text = "push subscription has unsubscribed or expired" if status == 410 else ""
        return web.Response(status=status, text=text)

    app = web.Application()
    app.router.add_post("/push/{status}", handler)
    server = TestServer(app)
    await server.start_server()
    service.base_url = f"http://{server.host}:{server.port}"
    try:
        yield service
    finally:
        await server.close()

