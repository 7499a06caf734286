"""
Event routing on top of a browser engine's raw event stream.

The router attaches one engine listener per raw event name and fans each
notification out to its own callbacks. On top of that it derives the
subscriptions callers actually want: correlated responses, every paused
request, every requested URL, URLs matching a pattern, and a one-shot
close notification.

Every registration returns a ``Subscription`` whose ``dispose()`` removes
the callback again. Callbacks may be plain functions or coroutine
functions; callbacks registered or disposed while a notification is
being delivered take effect from the next notification.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import re
from collections.abc import Awaitable, Callable
from typing import Any

from browser_agent.browser.engine import (
    INSPECTOR_DETACHED,
    REQUEST_EVENT,
    RESPONSE_RECEIVED,
    BrowserEngine,
    InterceptedRequest,
)
from browser_agent.models.network import NetworkExchange, NetworkRequest, NetworkResponse
from browser_agent.utils import logger
from browser_agent.utils.errors import InvalidArgumentError, get_error_message

log = logger.create_logger("EventRouter")

RESPONSE = "response"
CLOSE = "close"

Callback = Callable[..., Awaitable[Any] | Any]
UrlPattern = str | re.Pattern[str]


async def _invoke(callback: Callback, *args: Any) -> None:
    """Call *callback*, awaiting the result when it is awaitable."""
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """Handle for a registered callback."""

    def __init__(self, dispose: Callable[[], None]) -> None:
        self._dispose: Callable[[], None] | None = dispose

    @property
    def active(self) -> bool:
        return self._dispose is not None

    def dispose(self) -> None:
        """Remove the callback. Calling this more than once is a no-op."""
        if self._dispose is not None:
            dispose, self._dispose = self._dispose, None
            dispose()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()


class EventRouter:
    """Derived subscriptions over a ``BrowserEngine``'s raw events."""

    def __init__(self, engine: BrowserEngine) -> None:
        self._engine = engine
        self._callbacks: dict[str, list[Callback]] = {}
        self._dispatchers: dict[str, Callable[[Any], Awaitable[None]]] = {}
        self._closed = asyncio.Event()

        # Close detection must not depend on anyone having subscribed.
        self._attach(INSPECTOR_DETACHED)

    # ==========================================================================
    # Raw plumbing
    # ==========================================================================

    def _attach(self, raw_event: str) -> list[Callback]:
        callbacks = self._callbacks.get(raw_event)
        if callbacks is None:
            callbacks = self._callbacks[raw_event] = []
            dispatcher = functools.partial(self._dispatch, raw_event)
            self._dispatchers[raw_event] = dispatcher
            self._engine.on(raw_event, dispatcher)
        return callbacks

    def _subscribe(self, raw_event: str, callback: Callback) -> Subscription:
        self._attach(raw_event).append(callback)
        return Subscription(functools.partial(self._unsubscribe, raw_event, callback))

    def _unsubscribe(self, raw_event: str, callback: Callback) -> None:
        callbacks = self._callbacks.get(raw_event)
        if not callbacks or callback not in callbacks:
            return
        callbacks.remove(callback)
        if not callbacks and raw_event != INSPECTOR_DETACHED:
            self._detach(raw_event)

    def _detach(self, raw_event: str) -> None:
        self._callbacks.pop(raw_event, None)
        dispatcher = self._dispatchers.pop(raw_event, None)
        if dispatcher is not None:
            self._engine.off(raw_event, dispatcher)

    async def _dispatch(self, raw_event: str, payload: Any) -> None:
        if raw_event == INSPECTOR_DETACHED and not self._closed.is_set():
            self._closed.set()
            log.info("Browser window closed")

        # Iterate over a snapshot: callbacks may (un)subscribe while running.
        callbacks = list(self._callbacks.get(raw_event, ()))
        total = len(callbacks)
        for index, callback in enumerate(callbacks):
            await _invoke(callback, payload, index, total)

    def detach(self) -> None:
        """Remove every engine listener the router installed."""
        for raw_event in list(self._dispatchers):
            self._detach(raw_event)

    # ==========================================================================
    # Subscriptions
    # ==========================================================================

    def on(self, event: str, callback: Callback) -> Subscription:
        """Register a callback for an event.

        ``"response"`` delivers the most recent ``NetworkExchange`` for each
        ``Network.responseReceived`` notification; notifications whose
        request id has no tracked exchange are skipped. ``"close"`` maps to
        ``Inspector.detached``. Any other name is handed to the engine
        verbatim (DevTools method names, ``"request"``, page events).

        The callback is called as ``callback(payload, index, total)``,
        where *index* is its position among the callbacks registered for
        the same raw event and *total* their count.
        """
        if event == RESPONSE:
            return self._subscribe(RESPONSE_RECEIVED, self._correlate(callback))
        if event == CLOSE:
            return self._subscribe(INSPECTOR_DETACHED, callback)
        return self._subscribe(event, callback)

    def _correlate(self, callback: Callback) -> Callback:
        async def handler(params: dict[str, Any] | None, index: int, total: int) -> None:
            request_id = (params or {}).get("requestId")
            exchanges = self._engine.network.select(request_id) if request_id else []
            if not exchanges:
                log.debug("No exchange for response, skipping", {"requestId": request_id})
                return
            await _invoke(callback, exchanges[-1], index, total)

        return handler

    async def every_request(self, callback: Callable[[InterceptedRequest], Any]) -> Subscription:
        """Enable interception and pass every paused request to *callback*.

        The request is continued once the callback returns unless the
        callback already continued, aborted or fulfilled it. When the
        callback raises, the request is still continued and the error is
        re-raised.
        """
        await self._engine.intercept()

        async def handler(request: InterceptedRequest, index: int, total: int) -> None:
            try:
                await _invoke(callback, request)
            except Exception as exc:
                log.warn("Request callback raised", {
                    "url": request.url,
                    "error": get_error_message(exc),
                })
                raise
            finally:
                if not request.is_handled:
                    await request.continue_()

        return self._subscribe(REQUEST_EVENT, handler)

    def every_response(self, callback: Callable[[NetworkResponse], Any]) -> Subscription:
        """Pass every received response to *callback*."""

        async def handler(exchange: NetworkExchange, index: int, total: int) -> None:
            if exchange.response is not None:
                await _invoke(callback, exchange.response)

        return self.on(RESPONSE, handler)

    def every_response_with_request(
        self, callback: Callable[[NetworkResponse, NetworkRequest], Any]
    ) -> Subscription:
        """Pass every received response, and the request it answers, to *callback*."""

        async def handler(exchange: NetworkExchange, index: int, total: int) -> None:
            if exchange.response is not None:
                await _invoke(callback, exchange.response, exchange.request)

        return self.on(RESPONSE, handler)

    async def every_url(self, callback: Callable[[str], Any]) -> Subscription:
        """Pass every requested URL to *callback*."""

        async def handler(request: InterceptedRequest) -> None:
            await _invoke(callback, request.url)

        return await self.every_request(handler)

    async def every_url_like(self, pattern: UrlPattern, callback: Callable[[str], Any]) -> Subscription:
        """Pass every requested URL matching *pattern* to *callback*.

        A ``str`` pattern matches URLs containing it; a compiled regular
        expression matches when it is found anywhere in the URL.
        """
        if isinstance(pattern, str):
            literal = pattern

            def matches(url: str) -> bool:
                return literal in url
        elif isinstance(pattern, re.Pattern):
            regex = pattern

            def matches(url: str) -> bool:
                return regex.search(url) is not None
        else:
            raise InvalidArgumentError(
                f"invalid URL pattern ({pattern!r}), must be either a str or a compiled re.Pattern"
            )

        async def handler(url: str) -> None:
            if matches(url):
                await _invoke(callback, url)

        return await self.every_url(handler)

    # ==========================================================================
    # Close
    # ==========================================================================

    @property
    def closed(self) -> bool:
        """Whether a close notification has been observed."""
        return self._closed.is_set()

    async def wait_until_closed(self, timeout: float | None = None) -> None:
        """Wait until the browser window is closed.

        Returns immediately if it already was.

        Raises:
            TimeoutError: *timeout* seconds passed first.
        """
        if timeout is None:
            await self._closed.wait()
        else:
            await asyncio.wait_for(self._closed.wait(), timeout)
