"""E2E tests for WebPushClientSession against a local push service.

The push service fixture is a real aiohttp server; the subscriber side
decrypts what arrived on the wire with its own private key.
"""

import aiohttp
import pytest

from tests.conftest import PushService, SubscriberKeys
from webpush_ece.client import WebPushClientSession
from webpush_ece.config import EncryptionOptions, RequestOptions
from webpush_ece.constants import ContentEncoding, Urgency
from webpush_ece.ece import decrypt_aes128gcm, decrypt_aesgcm
from webpush_ece.exceptions import PushServiceError, WebPushError
from webpush_ece.request import Subscription, WebPush
from webpush_ece.vapid import verify_token


def _subscription(push_service: PushService, subscriber: SubscriberKeys, status: int = 201) -> Subscription:
    return Subscription(push_service.endpoint(status), subscriber.p256dh, subscriber.auth)


class TestNotify:
    """Deliver push messages over HTTP."""

    async def test_encrypted_payload_roundtrip(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys
    ) -> None:
        async with WebPushClientSession(web_push) as session:
            response = await session.notify(_subscription(push_service, subscriber), b"hello from the server")
            response.release()

        assert response.status == 201
        [received] = push_service.received
        assert received.headers["Content-Encoding"] == "aes128gcm"
        assert decrypt_aes128gcm(received.body, subscriber.private_key, subscriber.auth) == b"hello from the server"

    async def test_vapid_token_on_the_wire(
        self,
        web_push: WebPush,
        push_service: PushService,
        subscriber: SubscriberKeys,
        vapid_keys: dict[str, str],
    ) -> None:
        async with WebPushClientSession(web_push) as session:
            (await session.notify(_subscription(push_service, subscriber), "data")).release()

        authorization = push_service.received[0].headers["Authorization"]
        token, key = authorization.removeprefix("vapid t=").split(", k=")
        claims = verify_token(token, key)
        assert key == vapid_keys["publicKey"]
        assert claims["aud"] == push_service.base_url

    async def test_legacy_encoding(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys
    ) -> None:
        options = RequestOptions(encryption=EncryptionOptions(content_encoding=ContentEncoding.AES_GCM))

        async with WebPushClientSession(web_push) as session:
            (await session.notify(_subscription(push_service, subscriber), b"legacy", options)).release()

        received = push_service.received[0]
        salt = received.headers["Encryption"].removeprefix("salt=")
        dh = received.headers["Crypto-Key"].split(";")[0].removeprefix("dh=")
        assert decrypt_aesgcm(received.body, salt, dh, subscriber.private_key, subscriber.auth) == b"legacy"

    async def test_delivery_headers(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys
    ) -> None:
        options = RequestOptions(ttl=30, urgency=Urgency.LOW, topic="updates")

        async with WebPushClientSession(web_push) as session:
            (await session.notify(_subscription(push_service, subscriber), b"x", options)).release()

        headers = push_service.received[0].headers
        assert headers["TTL"] == "30"
        assert headers["Urgency"] == "low"
        assert headers["Topic"] == "updates"

    async def test_no_payload(self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys) -> None:
        async with WebPushClientSession(web_push) as session:
            (await session.notify(_subscription(push_service, subscriber))).release()

        received = push_service.received[0]
        assert received.body == b""
        assert received.headers["Content-Length"] == "0"
        assert "Content-Encoding" not in received.headers

    async def test_session_kwargs(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys
    ) -> None:
        timeout = aiohttp.ClientTimeout(total=10)

        async with WebPushClientSession(web_push, timeout=timeout) as session:
            (await session.notify(_subscription(push_service, subscriber, 200), b"x")).release()

        assert len(push_service.received) == 1


class TestPushServiceErrors:
    """Non-success statuses surface as PushServiceError."""

    async def test_gone(self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys) -> None:
        async with WebPushClientSession(web_push) as session:
            with pytest.raises(PushServiceError) as exc:
                await session.notify(_subscription(push_service, subscriber, 410), b"x")

        assert exc.value.status == 410
        assert exc.value.body == "push subscription has unsubscribed or expired"
        assert exc.value.field == "status"
        assert exc.value.actual == 410

    @pytest.mark.parametrize("status", [300, 304])
    async def test_redirect_statuses_are_errors(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys, status: int
    ) -> None:
        async with WebPushClientSession(web_push) as session:
            with pytest.raises(PushServiceError) as exc:
                await session.notify(_subscription(push_service, subscriber, status), b"x")

        assert exc.value.status == status
        assert exc.value.limit == "2xx"

    @pytest.mark.parametrize("status", [400, 404, 413, 429, 500])
    async def test_error_statuses(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys, status: int
    ) -> None:
        async with WebPushClientSession(web_push) as session:
            with pytest.raises(WebPushError):
                await session.notify(_subscription(push_service, subscriber, status), b"x")

        assert len(push_service.received) == 1

    async def test_validation_error_sends_nothing(
        self, web_push: WebPush, push_service: PushService, subscriber: SubscriberKeys
    ) -> None:
        async with WebPushClientSession(web_push) as session:
            with pytest.raises(WebPushError):
                await session.notify(_subscription(push_service, subscriber), b"x" * 5000)

        assert push_service.received == []


class TestSessionLifecycle:
    """Context manager handling."""

    async def test_notify_outside_context(self, web_push: WebPush, subscription: Subscription) -> None:
        session = WebPushClientSession(web_push)

        with pytest.raises(RuntimeError, match="async with"):
            await session.notify(subscription, b"x")

    async def test_session_closed_on_exit(self, web_push: WebPush) -> None:
        async with WebPushClientSession(web_push) as session:
            assert session._session is not None  # pyright: ignore[reportPrivateUsage]

        assert session._session is None  # pyright: ignore[reportPrivateUsage]
