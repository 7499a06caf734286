"""
Browser agent: a headless or visible Chromium session with cookie
import/export and correlated network event subscriptions.

The agent owns a ``BrowserEngine`` (``PlaywrightEngine`` unless another
factory is supplied) and an ``EventRouter`` over it. Proxy input is
normalized once, before the engine is launched.

Example::

    async with Agent.open(proxy="http://proxy.example.com:8080") as agent:
        await agent.every_url(print)
        await agent.go_to("https://example.com/")
        await agent.save_cookies("cookies.txt")
"""

from __future__ import annotations

import contextlib
import pathlib
from collections.abc import AsyncIterator, Callable
from typing import Any
from urllib import parse

from browser_agent.browser.cookie_file import CookieFile
from browser_agent.browser.engine import BrowserEngine, EngineFactory, InterceptedRequest, Node
from browser_agent.browser.events import Callback, EventRouter, Subscription, UrlPattern
from browser_agent.browser.playwright_engine import PlaywrightEngine
from browser_agent.config import AgentSettings
from browser_agent.models.cookie import Cookie
from browser_agent.models.launch import LaunchOptions
from browser_agent.models.network import NetworkRequest, NetworkResponse
from browser_agent.models.proxy import ProxyConfig, ProxyValue, normalize_proxy
from browser_agent.utils import logger, url as url_mod
from browser_agent.utils.errors import InvalidArgumentError

log = logger.create_logger("Agent")

_XPATH_LINKS = "//a[@href]"
_COOKIE_SCHEMES = ("http", "https")


class Agent:
    """
    A browser session driven through an external engine.
    """

    def __init__(
        self,
        engine: BrowserEngine,
        *,
        headless: bool = True,
        proxy: ProxyConfig | None = None,
    ) -> None:
        """Wrap an already launched *engine*.

        Prefer :meth:`launch` or :meth:`open`, which also launch the
        engine and apply the cookie/URL options.
        """
        self._engine = engine
        self._headless = headless
        self._proxy = proxy
        self._bypass_csp = False
        self._router = EventRouter(engine)

    # ==========================================================================
    # Construction
    # ==========================================================================

    @classmethod
    async def launch(
        cls,
        *,
        visible: bool = False,
        headless: bool | None = None,
        proxy: ProxyValue = None,
        cookie: Cookie | dict[str, Any] | None = None,
        cookie_file: str | pathlib.Path | None = None,
        url: str | None = None,
        channel: str | None = None,
        engine_factory: EngineFactory | None = None,
        **engine_kwargs: Any,
    ) -> Agent:
        """Launch a browser and return an agent for it.

        Args:
            visible: Start with a visible window.
            headless: Start without a window; defaults to ``not visible``.
            proxy: ``None``, a ``ProxyConfig`` or ``dict``, a parsed URL, or
                a URL string.
            cookie: A cookie to set once the browser is up.
            cookie_file: A cookie file to load once the browser is up.
            url: A URL to open once cookies are in place.
            channel: Browser distribution channel (e.g. ``"chrome"``).
            engine_factory: Coroutine function building the engine from
                ``LaunchOptions``; defaults to ``PlaywrightEngine.launch``.
            **engine_kwargs: Extra options passed through to the engine.

        Cookies without a domain are scoped to *url*.

        Raises:
            InvalidArgumentError: *proxy* has an unsupported shape, or a
                cookie without a domain was given and there is no *url*.
        """
        if headless is None:
            headless = not visible

        if cookie is not None and not isinstance(cookie, Cookie):
            cookie = Cookie.model_validate(cookie)
        if cookie is not None and cookie.domain is None and url is None:
            raise InvalidArgumentError(f"cookie {cookie.name!r} has no domain and no url was given")

        proxy_config = normalize_proxy(proxy)
        options = LaunchOptions(
            headless=headless,
            proxy=proxy_config,
            channel=channel,
            extra=engine_kwargs,
        )

        factory = engine_factory or PlaywrightEngine.launch
        engine = await factory(options)
        agent = cls(engine, headless=headless, proxy=proxy_config)

        try:
            if cookie is not None:
                await agent.add_cookie(cookie, url=url)
            if cookie_file is not None:
                await agent.load_cookies(cookie_file, url=url)
            if url is not None:
                await agent.go_to(url)
        except Exception:
            await agent.quit()
            raise

        return agent

    @classmethod
    @contextlib.asynccontextmanager
    async def open(cls, **kwargs: Any) -> AsyncIterator[Agent]:
        """Launch an agent for the duration of an ``async with`` block.

        The browser is quit when the block exits, even on error.
        """
        agent = await cls.launch(**kwargs)
        try:
            yield agent
        finally:
            await agent.quit()

    @classmethod
    async def from_settings(cls, settings: AgentSettings, **overrides: Any) -> Agent:
        """Launch an agent from explicit ``AgentSettings``; *overrides* win."""
        return await cls.launch(**{**settings.launch_kwargs(), **overrides})

    async def quit(self) -> None:
        """Close the browser."""
        await self._engine.quit()

    async def __aenter__(self) -> Agent:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.quit()

    # ==========================================================================
    # State
    # ==========================================================================

    @property
    def engine(self) -> BrowserEngine:
        """The underlying engine, for capabilities the agent does not wrap."""
        return self._engine

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def proxy(self) -> ProxyConfig | None:
        """The configured proxy, if any."""
        return self._proxy

    @property
    def has_proxy(self) -> bool:
        return self._proxy is not None

    @property
    def headless(self) -> bool:
        return self._headless

    @property
    def visible(self) -> bool:
        return not self._headless

    @property
    def bypass_csp(self) -> bool:
        """Whether Content-Security-Policy bypassing is enabled."""
        return self._bypass_csp

    async def set_bypass_csp(self, enabled: bool) -> None:
        """Enable or disable bypassing Content-Security-Policy."""
        await self._engine.bypass_csp(enabled)
        self._bypass_csp = enabled

    # ==========================================================================
    # Navigation & DOM
    # ==========================================================================

    @property
    def url(self) -> str:
        """The current page URL."""
        return self._engine.url

    @property
    def page_url(self) -> parse.ParseResult:
        """The current page URL, parsed."""
        return url_mod.parse_url(self._engine.url)

    async def go_to(self, url: str) -> None:
        await self._engine.go_to(url)

    async def search(self, query: str) -> list[Node]:
        """Return every node matching an XPath (leading ``/``) or CSS query."""
        if query.startswith("/"):
            return await self._engine.xpath(query)
        return await self._engine.css(query)

    async def at(self, query: str) -> Node | None:
        """Return the first node matching an XPath (leading ``/``) or CSS query."""
        if query.startswith("/"):
            return await self._engine.at_xpath(query)
        return await self._engine.at_css(query)

    async def links(self) -> list[str]:
        """Return the ``href`` of every ``<a>`` element in the current page."""
        links: list[str] = []
        for node in await self._engine.xpath(_XPATH_LINKS):
            href = await node.get_attribute("href")
            if href is not None:
                links.append(href)
        return links

    async def urls(self) -> list[str]:
        """Return every link in the current page as an absolute URL."""
        return url_mod.resolve_links(self._engine.url, await self.links())

    async def eval_js(self, expression: str, arg: Any = None) -> Any:
        return await self._engine.evaluate(expression, arg)

    async def load_js(self, *, url: str | None = None, path: str | None = None, content: str | None = None) -> Any:
        return await self._engine.add_script_tag(url=url, path=path, content=content)

    async def inject_js(self, source: str) -> None:
        """Evaluate *source* in every document before its own scripts run."""
        await self._engine.evaluate_on_new_document(source)

    async def load_css(self, *, url: str | None = None, path: str | None = None, content: str | None = None) -> Any:
        return await self._engine.add_style_tag(url=url, path=path, content=content)

    # ==========================================================================
    # Cookies
    # ==========================================================================

    async def cookies(self) -> list[Cookie]:
        """Return every cookie currently held by the browser."""
        return [Cookie.from_cdp(data) for data in await self._engine.cookies()]

    async def each_session_cookie(self) -> AsyncIterator[Cookie]:
        """Yield the cookies whose names mark them as session cookies."""
        for cookie in await self.cookies():
            if cookie.is_session_cookie:
                yield cookie

    async def session_cookies(self) -> list[Cookie]:
        return [cookie async for cookie in self.each_session_cookie()]

    async def add_cookie(self, cookie: Cookie | dict[str, Any], *, url: str | None = None) -> None:
        """Set a cookie from a ``Cookie`` or a cookie attribute dict.

        Cookies without a domain are scoped to *url*, or to the current
        page URL when no *url* is given.

        Raises:
            InvalidArgumentError: The cookie has no domain and the scope is
                not an ``http``/``https`` URL (e.g. ``about:blank``).
        """
        if not isinstance(cookie, Cookie):
            cookie = Cookie.model_validate(cookie)

        params = cookie.to_cdp()
        if "domain" not in params:
            scope = url or self._engine.url
            if url_mod.parse_url(scope).scheme not in _COOKIE_SCHEMES:
                raise InvalidArgumentError(
                    f"cookie {cookie.name!r} has no domain and cannot be scoped to {scope!r}"
                )
            params["url"] = scope
            log.debug("Scoping cookie to URL", {
                "name": cookie.name,
                "domain": url_mod.extract_domain(scope),
            })
        await self._engine.set_cookie(params)

    async def set_cookie(self, name: str, value: str, **attributes: Any) -> None:
        """Set a cookie by name and value, plus optional attributes."""
        await self.add_cookie(Cookie(name=name, value=value, **attributes))

    async def clear_cookies(self) -> None:
        await self._engine.clear_cookies()

    async def load_cookies(self, path: str | pathlib.Path, *, url: str | None = None) -> int:
        """Set every cookie stored in a cookie file.

        Lines without a domain are scoped as in :meth:`add_cookie`.

        Returns:
            The number of cookies set.

        Raises:
            MalformedCookieError: A line of the file is not a valid cookie;
                cookies on earlier lines have already been set.
            InvalidArgumentError: A line has no domain and there is no
                ``http``/``https`` URL to scope it to.
        """
        cookie_file = CookieFile(path)
        count = 0
        for cookie in cookie_file:
            await self.add_cookie(cookie, url=url)
            count += 1
        log.info("Loaded cookies", {"path": str(cookie_file.path), "count": count})
        return count

    async def save_cookies(self, path: str | pathlib.Path) -> int:
        """Write every browser cookie to a cookie file.

        Returns:
            The number of cookies written.
        """
        count = CookieFile.save(path, await self.cookies())
        log.info("Saved cookies", {"path": str(path), "count": count})
        return count

    # ==========================================================================
    # Events
    # ==========================================================================

    def on(self, event: str, callback: Callback) -> Subscription:
        """Register a callback; see :meth:`EventRouter.on`."""
        return self._router.on(event, callback)

    async def every_request(self, callback: Callable[[InterceptedRequest], Any]) -> Subscription:
        return await self._router.every_request(callback)

    def every_response(self, callback: Callable[[NetworkResponse], Any]) -> Subscription:
        return self._router.every_response(callback)

    def every_response_with_request(
        self, callback: Callable[[NetworkResponse, NetworkRequest], Any]
    ) -> Subscription:
        return self._router.every_response_with_request(callback)

    async def every_url(self, callback: Callable[[str], Any]) -> Subscription:
        return await self._router.every_url(callback)

    async def every_url_like(self, pattern: UrlPattern, callback: Callable[[str], Any]) -> Subscription:
        return await self._router.every_url_like(pattern, callback)

    @property
    def closed(self) -> bool:
        return self._router.closed

    async def wait_until_closed(self, timeout: float | None = None) -> None:
        """Wait until the browser window is closed."""
        await self._router.wait_until_closed(timeout)
