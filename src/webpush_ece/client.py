"""
aiohttp sender for push messages.

Wraps aiohttp.ClientSession and sends requests produced by WebPush. There is
no retry or backoff; a non-success status raises PushServiceError and the
caller decides what to do (e.g. drop the subscription on 404/410).

Usage:
    async with WebPushClientSession(web_push) as session:
        response = await session.notify(subscription, b"hello")
        response.release()
"""

import types
from typing import Any

import aiohttp
from typing_extensions import Self

from webpush_ece._logging import get_logger
from webpush_ece.config import RequestOptions
from webpush_ece.ece import Payload
from webpush_ece.exceptions import PushServiceError
from webpush_ece.request import Subscription, WebPush

__all__ = [
    "WebPushClientSession",
]

_logger = get_logger(__name__)


class WebPushClientSession:
    """
    aiohttp client session that delivers push messages.

    Example:
        async with WebPushClientSession(web_push, timeout=aiohttp.ClientTimeout(total=10)) as session:
            await session.notify(subscription, json.dumps(data))
    """

    def __init__(self, web_push: WebPush, **aiohttp_kwargs: Any) -> None:
        """
        Initialize the sender.

        Args:
            web_push: Request builder holding the VAPID identity
            **aiohttp_kwargs: Additional arguments passed to aiohttp.ClientSession
        """
        self.web_push = web_push
        self._session: aiohttp.ClientSession | None = None
        self._aiohttp_kwargs = aiohttp_kwargs

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(**self._aiohttp_kwargs)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def notify(
        self,
        subscription: Subscription,
        payload: Payload = None,
        options: RequestOptions | None = None,
    ) -> aiohttp.ClientResponse:
        """
        Send one push message.

        Args:
            subscription: Target subscription
            payload: Message payload
            options: Request options

        Returns:
            aiohttp.ClientResponse for a 2xx status

        Raises:
            PushServiceError: If the push service answers with a non-2xx status
            RuntimeError: If used outside ``async with``
        """
        if not self._session:
            raise RuntimeError("Session not initialized. Use 'async with' context manager.")

        request = self.web_push.generate_request(subscription, payload, options)
        response = await self._session.request(
            request.method,
            request.endpoint,
            headers=request.headers,
            data=request.body,
        )
        _logger.debug(
            "Push sent: url=%s status=%d auth=%s body_size=%s",
            response.url,
            response.status,
            request.auth_method.value,
            request.headers.get("Content-Length"),
        )

        if not 200 <= response.status < 300:
            body = await response.text()
            response.release()
            raise PushServiceError(response.status, body)
        return response
