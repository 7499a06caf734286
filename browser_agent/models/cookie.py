"""
Pydantic model for browser cookies and their ``Set-Cookie``-style wire format.

Wire format (read and write)::

    name[=value][; Domain=<d>][; Path=<p>][; Expires=<HTTP-date>][; httpOnly][; Secure]

Parsing additionally accepts ``Max-Age`` and ``SameSite`` and rejects any
other attribute or flag. Serialization always emits the fields above in
that fixed order, regardless of the order they were parsed in.
"""

from __future__ import annotations

import re
import time
from datetime import UTC
from email import utils as email_utils
from typing import Any

import pydantic

from browser_agent.utils.errors import MalformedCookieError
from browser_agent.utils.serialization import snake_to_camel

# Fields are separated by ";" followed by one or more whitespace characters.
_FIELD_SEPARATOR = re.compile(r";\s+")

_SESSION_SUFFIXES = ("sess", "session")

_CDP_SESSION_EXPIRES = -1

# Attributes that ``Network.setCookie`` accepts.
_CDP_SETTABLE = frozenset({
    "name", "value", "domain", "path", "expires",
    "http_only", "secure", "same_site", "priority",
    "same_party", "source_scheme", "source_port",
})


def _parse_http_date(value: str, field: str) -> int:
    """Parse an HTTP date into a UNIX timestamp."""
    try:
        parsed = email_utils.parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as error:
        raise MalformedCookieError(f"invalid Cookie date: {field!r}") from error
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp())


def _parse_max_age(value: str, field: str) -> int:
    """Parse a ``Max-Age`` value: delta-seconds, or an HTTP date."""
    stripped = value.strip()
    if stripped.lstrip("-").isdigit():
        return int(time.time()) + int(stripped)
    return _parse_http_date(value, field)


def format_http_date(timestamp: float) -> str:
    """Format a UNIX timestamp as an HTTP date (``Wed, 21 Oct 2015 07:28:00 GMT``)."""
    return email_utils.formatdate(timestamp, usegmt=True)


class Cookie(pydantic.BaseModel):
    """A browser cookie.

    Validates directly from the camelCase cookie objects the DevTools
    protocol returns (``Network.getAllCookies``); keys it does not know
    about are ignored there. Wire-format strings go through :meth:`parse`,
    which is strict.

    The ``size``, ``session``, ``priority``, ``same_party``,
    ``source_scheme`` and ``source_port`` fields are only ever populated
    by the browser.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=snake_to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    name: str
    value: str = ""
    domain: str | None = None
    path: str | None = None
    expires: int | None = None
    http_only: bool = False
    secure: bool = False
    same_site: str | None = None

    size: int | None = None
    session: bool | None = None
    priority: str | None = None
    same_party: bool | None = None
    source_scheme: str | None = None
    source_port: int | None = None

    @pydantic.field_validator("name")
    @classmethod
    def _require_name(cls, name: str) -> str:
        if not name:
            raise ValueError("cookie name must not be empty")
        return name

    @pydantic.field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Any:
        return "" if value is None else value

    @pydantic.field_validator("expires", mode="before")
    @classmethod
    def _truncate_expires(cls, expires: Any) -> Any:
        # The browser reports fractional seconds.
        if isinstance(expires, float):
            return int(expires)
        return expires

    # ==========================================================================
    # Wire format
    # ==========================================================================

    @classmethod
    def parse(cls, string: str) -> Cookie:
        """Parse a browser cookie from a raw wire-format string.

        Args:
            string: The raw cookie string, e.g.
                ``"foo=bar; Domain=example.com; Secure"``.

        Returns:
            The parsed cookie.

        Raises:
            MalformedCookieError: The string was empty, had an empty name,
                or contained an unknown attribute or flag.
        """
        fields = _FIELD_SEPARATOR.split(string)
        while fields and not fields[-1]:
            fields.pop()

        if not fields:
            raise MalformedCookieError(f"cookie must not be empty: {string!r}")

        name, _, value = fields[0].partition("=")
        if not name:
            raise MalformedCookieError(f"cookie name must not be empty: {string!r}")

        attributes: dict[str, Any] = {"name": name, "value": value}

        for field in fields[1:]:
            if "=" in field:
                key, _, attr_value = field.partition("=")
                key = key.lower()

                if key == "expires":
                    attributes["expires"] = _parse_http_date(attr_value, field)
                elif key == "max-age":
                    attributes["expires"] = _parse_max_age(attr_value, field)
                elif key == "path":
                    attributes["path"] = attr_value
                elif key == "domain":
                    attributes["domain"] = attr_value
                elif key == "samesite":
                    attributes["same_site"] = attr_value
                else:
                    raise MalformedCookieError(f"unrecognized Cookie field: {field!r}")
            else:
                flag = field.lower()

                if flag == "httponly":
                    attributes["http_only"] = True
                elif flag == "secure":
                    attributes["secure"] = True
                else:
                    raise MalformedCookieError(f"unrecognized Cookie flag: {field!r}")

        return cls(**attributes)

    def to_string(self) -> str:
        """Convert the cookie back into a raw wire-format string."""
        string = f"{self.name}={self.value}"

        if self.domain is not None:
            string += f"; Domain={self.domain}"
        if self.path is not None:
            string += f"; Path={self.path}"
        if self.expires is not None:
            string += f"; Expires={format_http_date(self.expires)}"
        if self.http_only:
            string += "; httpOnly"
        if self.secure:
            string += "; Secure"

        return string

    def __str__(self) -> str:
        return self.to_string()

    # ==========================================================================
    # DevTools protocol
    # ==========================================================================

    @classmethod
    def from_cdp(cls, data: dict[str, Any]) -> Cookie:
        """Build a cookie from a DevTools protocol cookie object.

        The browser reports session cookies with ``expires=-1``; those come
        back without an expiry.
        """
        if data.get("session") or data.get("expires") == _CDP_SESSION_EXPIRES:
            data = {**data, "expires": None}
        return cls.model_validate(data)

    def to_cdp(self) -> dict[str, Any]:
        """Return the ``Network.setCookie`` parameters for this cookie.

        The path defaults to ``/`` when the cookie does not carry one, and
        ``sameSite`` is capitalized to the protocol's ``Strict``/``Lax``/``None``.
        """
        params = self.model_dump(
            by_alias=True,
            exclude_none=True,
            include=set(_CDP_SETTABLE),
        )
        params.setdefault("path", "/")
        if "sameSite" in params:
            params["sameSite"] = params["sameSite"].capitalize()
        return params

    # ==========================================================================
    # Classification
    # ==========================================================================

    @property
    def is_session_cookie(self) -> bool:
        """Whether the cookie's name marks it as a session cookie.

        A naming convention (``...sess`` / ``...session``), independent of
        the browser's own ``session`` flag, which only reflects a missing
        expiry.
        """
        return self.name.endswith(_SESSION_SUFFIXES)
