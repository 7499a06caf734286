"""
Playwright implementation of the browser engine seam.

Launches Chromium through ``playwright.async_api``, opens a single page
and a DevTools session attached to it, and exposes DevTools
notifications, intercepted requests, and cookie management through the
``BrowserEngine`` interface.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable
from typing import Any

from playwright import async_api

from browser_agent.browser.engine import (
    INSPECTOR_DETACHED,
    LOADING_FAILED,
    REQUEST_EVENT,
    REQUEST_WILL_BE_SENT,
    RESPONSE_RECEIVED,
    Listener,
)
from browser_agent.browser.network import NetworkTraffic
from browser_agent.models.launch import LaunchOptions
from browser_agent.utils import logger

log = logger.create_logger("PlaywrightEngine")

_CDP_DOMAINS = ("Network.enable", "Page.enable", "Inspector.enable")


class PlaywrightInterceptedRequest:
    """A request paused by ``page.route()``."""

    def __init__(self, route: async_api.Route) -> None:
        self._route = route
        self._request = route.request
        self._handled = False

    @property
    def url(self) -> str:
        return self._request.url

    @property
    def method(self) -> str:
        return self._request.method

    @property
    def headers(self) -> dict[str, str]:
        return self._request.headers

    @property
    def resource_type(self) -> str:
        return self._request.resource_type

    @property
    def post_data(self) -> str | None:
        return self._request.post_data

    @property
    def is_handled(self) -> bool:
        """Whether the request was already continued, aborted or fulfilled."""
        return self._handled

    async def continue_(self, **overrides: Any) -> None:
        """Let the request proceed, optionally overriding url/method/headers/post_data."""
        self._handled = True
        await self._route.continue_(**overrides)

    async def abort(self, error_code: str = "failed") -> None:
        """Fail the request with the given network error code."""
        self._handled = True
        await self._route.abort(error_code)

    async def respond(self, **response: Any) -> None:
        """Fulfil the request with a synthetic response (status, headers, body...)."""
        self._handled = True
        await self._route.fulfill(**response)

    def __repr__(self) -> str:
        return f"<PlaywrightInterceptedRequest {self.method} {self.url}>"


class PlaywrightEngine:
    """
    A single Chromium page driven through Playwright and a DevTools session.
    """

    def __init__(
        self,
        playwright: async_api.Playwright,
        browser: async_api.Browser,
        context: async_api.BrowserContext,
        page: async_api.Page,
        cdp: async_api.CDPSession,
    ) -> None:
        self._playwright: async_api.Playwright | None = playwright
        self._browser: async_api.Browser | None = browser
        self._context: async_api.BrowserContext | None = context
        self._page: async_api.Page | None = page
        self._cdp: async_api.CDPSession | None = cdp

        self.network = NetworkTraffic()

        self._listeners: dict[str, list[Listener]] = {}
        self._forwarders: dict[str, Callable[..., Any]] = {}
        self._intercepting = False
        self._detached = False

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @classmethod
    async def launch(cls, options: LaunchOptions) -> PlaywrightEngine:
        """Launch Chromium with *options* and attach to a fresh page."""
        launch_kwargs: dict[str, Any] = {"headless": options.headless, **options.extra}
        if options.proxy is not None:
            launch_kwargs["proxy"] = options.proxy.to_playwright()

        log.info("Launching browser", {
            "headless": options.headless,
            "proxy": options.proxy.server if options.proxy else None,
            "channel": options.channel,
        })

        pw = await async_api.async_playwright().start()
        try:
            if options.channel:
                try:
                    br = await pw.chromium.launch(channel=options.channel, **launch_kwargs)
                except Exception as exc:
                    log.info(
                        "Browser channel not available, falling back to bundled Chromium",
                        {"channel": options.channel, "error": str(exc)},
                    )
                    br = await pw.chromium.launch(**launch_kwargs)
            else:
                br = await pw.chromium.launch(**launch_kwargs)

            context = await br.new_context()
            page = await context.new_page()
            cdp = await context.new_cdp_session(page)
        except Exception:
            await pw.stop()
            raise

        engine = cls(pw, br, context, page, cdp)
        await engine._attach()
        return engine

    async def _attach(self) -> None:
        """Wire network bookkeeping and close detection, then enable DevTools domains."""
        cdp = self._require_cdp()

        # Registered before any forwarder so the exchange table is current
        # by the time listeners see the same notification.
        cdp.on(REQUEST_WILL_BE_SENT, self._track(self.network.on_request_will_be_sent))
        cdp.on(RESPONSE_RECEIVED, self._track(self.network.on_response_received))
        cdp.on(LOADING_FAILED, self._track(self.network.on_loading_failed))

        self._require_page().on("close", self._on_page_close)
        if self._browser is not None:
            self._browser.on("disconnected", self._on_browser_disconnected)

        for command in _CDP_DOMAINS:
            await cdp.send(command)

        log.debug("Attached DevTools session")

    @staticmethod
    def _track(handler: Callable[[dict[str, Any]], None]) -> Callable[[dict[str, Any] | None], None]:
        def tracker(params: dict[str, Any] | None) -> None:
            if params:
                handler(params)

        return tracker

    async def quit(self) -> None:
        """Close the browser and clean up all resources."""
        log.debug("Closing browser")

        if self._page is not None:
            if self._intercepting:
                try:
                    await self._page.unroute("**/*", self._on_route)
                except Exception as exc:
                    log.debug("Unroute error (non-fatal)", {"error": str(exc)})
                self._intercepting = False

        if self._context is not None:
            try:
                await self._context.close()
            except Exception as exc:
                log.debug("Context close error (non-fatal)", {"error": str(exc)})
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.debug("Browser close error (non-fatal)", {"error": str(exc)})
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.debug("Playwright stop error (non-fatal)", {"error": str(exc)})
            self._playwright = None

        self._page = None
        self._cdp = None
        log.debug("Browser closed")

    # ==========================================================================
    # Raw events
    # ==========================================================================

    def on(self, event: str, listener: Listener) -> None:
        """Register *listener* for a DevTools method name, ``"request"``, or a page event."""
        self._listeners.setdefault(event, []).append(listener)

        if event == REQUEST_EVENT or event in self._forwarders:
            return

        forwarder = functools.partial(self._emit, event)
        self._forwarders[event] = forwarder
        if "." in event:
            self._require_cdp().on(event, forwarder)
        else:
            self._require_page().on(event, forwarder)

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener previously registered with :meth:`on`."""
        listeners = self._listeners.get(event)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if listeners:
            return

        del self._listeners[event]
        forwarder = self._forwarders.pop(event, None)
        if forwarder is None:
            return
        emitter = self._cdp if "." in event else self._page
        if emitter is not None:
            emitter.remove_listener(event, forwarder)

    async def _emit(self, event: str, payload: Any = None) -> None:
        """Deliver *payload* to every listener of *event*, in registration order."""
        if event == INSPECTOR_DETACHED:
            if self._detached:
                return
            self._detached = True

        for listener in list(self._listeners.get(event, ())):
            result = listener(payload)
            if inspect.isawaitable(result):
                await result

    async def _on_page_close(self, _page: Any = None) -> None:
        log.debug("Page closed")
        await self._emit(INSPECTOR_DETACHED, {"reason": "page_closed"})

    async def _on_browser_disconnected(self, _browser: Any = None) -> None:
        log.debug("Browser disconnected")
        await self._emit(INSPECTOR_DETACHED, {"reason": "browser_disconnected"})

    # ==========================================================================
    # Network interception
    # ==========================================================================

    async def intercept(self) -> None:
        """Pause every request and deliver it to ``"request"`` listeners."""
        if self._intercepting:
            return
        await self._require_page().route("**/*", self._on_route)
        self._intercepting = True
        log.info("Network interception enabled")

    async def _on_route(self, route: async_api.Route) -> None:
        request = PlaywrightInterceptedRequest(route)
        try:
            await self._emit(REQUEST_EVENT, request)
        finally:
            if not request.is_handled:
                await request.continue_()

    # ==========================================================================
    # Navigation & DOM
    # ==========================================================================

    @property
    def page(self) -> async_api.Page:
        """The underlying Playwright page, for capabilities outside the seam."""
        return self._require_page()

    @property
    def url(self) -> str:
        return self._require_page().url

    async def go_to(self, url: str) -> None:
        log.debug("Navigating", {"url": url})
        await self._require_page().goto(url)

    async def xpath(self, query: str) -> list[async_api.ElementHandle]:
        return await self._require_page().query_selector_all(f"xpath={query}")

    async def css(self, query: str) -> list[async_api.ElementHandle]:
        return await self._require_page().query_selector_all(query)

    async def at_xpath(self, query: str) -> async_api.ElementHandle | None:
        return await self._require_page().query_selector(f"xpath={query}")

    async def at_css(self, query: str) -> async_api.ElementHandle | None:
        return await self._require_page().query_selector(query)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return await self._require_page().evaluate(expression, arg)

    async def add_script_tag(
        self, *, url: str | None = None, path: str | None = None, content: str | None = None
    ) -> async_api.ElementHandle:
        return await self._require_page().add_script_tag(url=url, path=path, content=content)

    async def add_style_tag(
        self, *, url: str | None = None, path: str | None = None, content: str | None = None
    ) -> async_api.ElementHandle:
        return await self._require_page().add_style_tag(url=url, path=path, content=content)

    async def evaluate_on_new_document(self, source: str) -> None:
        await self._require_page().add_init_script(source)

    async def bypass_csp(self, enabled: bool) -> None:
        await self._require_cdp().send("Page.setBypassCSP", {"enabled": enabled})

    # ==========================================================================
    # Cookies
    # ==========================================================================

    async def cookies(self) -> list[dict[str, Any]]:
        """Return every cookie in the browser as DevTools cookie objects."""
        result = await self._require_cdp().send("Network.getAllCookies")
        return result.get("cookies", [])

    async def set_cookie(self, params: dict[str, Any]) -> None:
        """Set a cookie from ``Network.setCookie`` parameters."""
        result = await self._require_cdp().send("Network.setCookie", params)
        if result and result.get("success") is False:
            raise RuntimeError(f"Browser rejected cookie {params.get('name')!r}")

    async def clear_cookies(self) -> None:
        await self._require_cdp().send("Network.clearBrowserCookies")

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _require_page(self) -> async_api.Page:
        if self._page is None:
            raise RuntimeError("No browser session active")
        return self._page

    def _require_cdp(self) -> async_api.CDPSession:
        if self._cdp is None:
            raise RuntimeError("No browser session active")
        return self._cdp
