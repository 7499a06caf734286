"""Pydantic models for decoded network requests, responses, and their exchanges."""

from __future__ import annotations

from typing import Any

import pydantic

from browser_agent.utils.serialization import snake_to_camel


class NetworkRequest(pydantic.BaseModel):
    """An HTTP request observed by the browser."""

    model_config = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)

    request_id: str
    url: str
    method: str = "GET"
    headers: dict[str, str] = pydantic.Field(default_factory=dict)
    resource_type: str | None = None
    post_data: str | None = None
    timestamp: float | None = None

    @classmethod
    def from_cdp(cls, params: dict[str, Any]) -> NetworkRequest:
        """Build a request from ``Network.requestWillBeSent`` params."""
        request = params.get("request", {})
        return cls(
            request_id=params["requestId"],
            url=request.get("url", ""),
            method=request.get("method", "GET"),
            headers=request.get("headers", {}),
            resource_type=params.get("type"),
            post_data=request.get("postData"),
            timestamp=params.get("timestamp"),
        )


class NetworkResponse(pydantic.BaseModel):
    """An HTTP response received by the browser."""

    model_config = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)

    request_id: str
    url: str
    status: int
    status_text: str = ""
    headers: dict[str, str] = pydantic.Field(default_factory=dict)
    mime_type: str | None = None
    remote_ip_address: str | None = None
    from_disk_cache: bool = False

    @classmethod
    def from_cdp(cls, request_id: str, response: dict[str, Any]) -> NetworkResponse:
        """Build a response from a DevTools ``Network.Response`` object."""
        return cls(
            request_id=request_id,
            url=response.get("url", ""),
            status=response.get("status", 0),
            status_text=response.get("statusText", ""),
            headers=response.get("headers", {}),
            mime_type=response.get("mimeType"),
            remote_ip_address=response.get("remoteIPAddress"),
            from_disk_cache=response.get("fromDiskCache", False),
        )

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400


class NetworkExchange(pydantic.BaseModel):
    """A request paired with the response it produced, if any yet.

    Several exchanges can share one request id when the browser follows
    redirects; the most recent one is authoritative.
    """

    request: NetworkRequest
    response: NetworkResponse | None = None
    error_text: str | None = None

    @property
    def request_id(self) -> str:
        return self.request.request_id

    @property
    def is_finished(self) -> bool:
        """Whether a response arrived or the request failed."""
        return self.response is not None or self.error_text is not None

    @property
    def is_redirect(self) -> bool:
        return self.response is not None and self.response.is_redirect
