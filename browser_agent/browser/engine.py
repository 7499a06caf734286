"""
The browser engine seam.

``BrowserEngine`` describes the only engine capabilities the agent relies
on: navigation, DOM queries, script/style injection, cookie management,
raw event subscription, and network interception. ``PlaywrightEngine``
is the production implementation; tests substitute an in-memory fake.

Raw event names are DevTools protocol method names
(``"Network.responseReceived"``, ``"Inspector.detached"``, ...) plus
``"request"``, which delivers paused ``InterceptedRequest`` objects once
``intercept()`` has been called. Listeners receive a single payload
argument (the event params dict, or the intercepted request) and may be
coroutine functions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from browser_agent.browser.network import NetworkTraffic
from browser_agent.models.launch import LaunchOptions

# ============================================================================
# Event names
# ============================================================================

REQUEST_EVENT = "request"
REQUEST_WILL_BE_SENT = "Network.requestWillBeSent"
RESPONSE_RECEIVED = "Network.responseReceived"
LOADING_FAILED = "Network.loadingFailed"
INSPECTOR_DETACHED = "Inspector.detached"

Listener = Callable[[Any], Awaitable[None] | None]


class Node(Protocol):
    """A DOM node returned by an engine query."""

    async def get_attribute(self, name: str) -> str | None: ...


class InterceptedRequest(Protocol):
    """A paused request awaiting a decision."""

    @property
    def url(self) -> str: ...

    @property
    def method(self) -> str: ...

    @property
    def headers(self) -> dict[str, str]: ...

    @property
    def resource_type(self) -> str: ...

    @property
    def is_handled(self) -> bool: ...

    async def continue_(self, **overrides: Any) -> None: ...

    async def abort(self, error_code: str = "failed") -> None: ...

    async def respond(self, **response: Any) -> None: ...


class BrowserEngine(Protocol):
    """What the agent needs from the underlying browser automation engine."""

    network: NetworkTraffic

    @property
    def url(self) -> str: ...

    async def go_to(self, url: str) -> None: ...

    async def xpath(self, query: str) -> list[Node]: ...

    async def css(self, query: str) -> list[Node]: ...

    async def at_xpath(self, query: str) -> Node | None: ...

    async def at_css(self, query: str) -> Node | None: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...

    async def add_script_tag(self, *, url: str | None = None, path: str | None = None, content: str | None = None) -> Any: ...

    async def add_style_tag(self, *, url: str | None = None, path: str | None = None, content: str | None = None) -> Any: ...

    async def evaluate_on_new_document(self, source: str) -> None: ...

    async def bypass_csp(self, enabled: bool) -> None: ...

    async def cookies(self) -> list[dict[str, Any]]: ...

    async def set_cookie(self, params: dict[str, Any]) -> None: ...

    async def clear_cookies(self) -> None: ...

    async def intercept(self) -> None: ...

    def on(self, event: str, listener: Listener) -> None: ...

    def off(self, event: str, listener: Listener) -> None: ...

    async def quit(self) -> None: ...


EngineFactory = Callable[[LaunchOptions], Awaitable[BrowserEngine]]
