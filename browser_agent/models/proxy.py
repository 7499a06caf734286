"""
Proxy configuration record and the normalizer that builds it from the
different shapes a caller may supply.
"""

from __future__ import annotations

from typing import Any
from urllib import parse

import pydantic

from browser_agent.utils.errors import InvalidArgumentError


class ProxyConfig(pydantic.BaseModel):
    """Canonical proxy settings for a browser agent.

    Attributes:
        host: Proxy hostname or IP address.
        port: Proxy port, if one was given.
        user: Username for proxy authentication.
        password: Password for proxy authentication.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    host: str = pydantic.Field(min_length=1)
    port: int | None = None
    user: str | None = None
    password: str | None = None

    @property
    def server(self) -> str:
        """The ``host[:port]`` address handed to the browser."""
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"

    def to_playwright(self) -> dict[str, str]:
        """Return the ``proxy`` launch option understood by Playwright."""
        settings = {"server": self.server}
        if self.user is not None:
            settings["username"] = self.user
        if self.password is not None:
            settings["password"] = self.password
        return settings


ProxyValue = ProxyConfig | dict[str, Any] | pydantic.AnyUrl | parse.SplitResult | parse.ParseResult | str | None


def _unquote(component: str | None) -> str | None:
    return parse.unquote(component) if component is not None else None


def _from_parts(
    value: object,
    host: str | None,
    port: int | None,
    user: str | None,
    password: str | None,
) -> ProxyConfig:
    """Build a ``ProxyConfig`` from URL authority components."""
    if not host:
        raise InvalidArgumentError(f"invalid proxy value ({value!r}), the URL must contain a host")
    return ProxyConfig(
        host=host,
        port=port,
        user=_unquote(user),
        password=_unquote(password),
    )


def normalize_proxy(proxy: ProxyValue) -> ProxyConfig | None:
    """Normalize a proxy value into a ``ProxyConfig``.

    Accepts ``None`` (no proxy), a ``ProxyConfig`` or ``dict`` record,
    a parsed URL (``pydantic.AnyUrl`` or a ``urllib.parse`` result) or a
    URL string.

    Raises:
        InvalidArgumentError: The value has none of the accepted shapes, or
            is a URL without a host, or a record missing a host.
    """
    if proxy is None or isinstance(proxy, ProxyConfig):
        return proxy

    if isinstance(proxy, dict):
        try:
            return ProxyConfig.model_validate(proxy)
        except pydantic.ValidationError as error:
            raise InvalidArgumentError(f"invalid proxy value ({proxy!r}): {error}") from error

    if isinstance(proxy, pydantic.AnyUrl):
        return _from_parts(proxy, proxy.host, proxy.port, proxy.username, proxy.password)

    if isinstance(proxy, (parse.SplitResult, parse.ParseResult)):
        try:
            port = proxy.port
        except ValueError as error:
            raise InvalidArgumentError(f"invalid proxy value ({proxy!r}): {error}") from error
        return _from_parts(proxy, proxy.hostname, port, proxy.username, proxy.password)

    if isinstance(proxy, str):
        try:
            url = pydantic.AnyUrl(proxy)
        except pydantic.ValidationError as error:
            raise InvalidArgumentError(f"invalid proxy value ({proxy!r}): {error}") from error
        return _from_parts(proxy, url.host, url.port, url.username, url.password)

    raise InvalidArgumentError(
        f"invalid proxy value ({proxy!r}), must be either a ProxyConfig, dict, URL, str, or None"
    )
