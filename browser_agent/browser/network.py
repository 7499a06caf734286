"""
Per-request-id exchange table built from DevTools ``Network`` notifications.

Each ``Network.requestWillBeSent`` opens a new exchange. A redirect
re-uses the request id: the previous exchange is closed with the
``redirectResponse`` and a new one is appended, so ``select()`` returns
every hop in order and the last entry is the authoritative one.
"""

from __future__ import annotations

import collections
from typing import Any

from browser_agent.models.network import NetworkExchange, NetworkRequest, NetworkResponse
from browser_agent.utils import logger

log = logger.create_logger("NetworkTraffic")

MAX_TRACKED_EXCHANGES = 5000


class NetworkTraffic:
    """Tracks request/response exchanges keyed by request id."""

    def __init__(self, max_exchanges: int = MAX_TRACKED_EXCHANGES) -> None:
        self._max_exchanges = max_exchanges
        self._exchanges: collections.deque[NetworkExchange] = collections.deque()
        self._by_request_id: dict[str, list[NetworkExchange]] = {}
        self._limit_logged = False

    # ==========================================================================
    # Lookups
    # ==========================================================================

    @property
    def exchanges(self) -> list[NetworkExchange]:
        """All tracked exchanges, oldest first."""
        return list(self._exchanges)

    def select(self, request_id: str) -> list[NetworkExchange]:
        """Return every exchange for *request_id*, oldest first.

        Unknown ids yield an empty list.
        """
        return list(self._by_request_id.get(request_id, ()))

    def last(self, request_id: str) -> NetworkExchange | None:
        """Return the most recent exchange for *request_id*, if any."""
        exchanges = self._by_request_id.get(request_id)
        return exchanges[-1] if exchanges else None

    def clear(self) -> None:
        """Forget all tracked exchanges."""
        self._exchanges.clear()
        self._by_request_id.clear()
        self._limit_logged = False

    def __len__(self) -> int:
        return len(self._exchanges)

    # ==========================================================================
    # DevTools notifications
    # ==========================================================================

    def on_request_will_be_sent(self, params: dict[str, Any]) -> None:
        """Handle ``Network.requestWillBeSent``."""
        request_id = params["requestId"]

        redirect_response = params.get("redirectResponse")
        if redirect_response is not None:
            previous = self.last(request_id)
            if previous is not None and previous.response is None:
                previous.response = NetworkResponse.from_cdp(request_id, redirect_response)

        self._append(NetworkExchange(request=NetworkRequest.from_cdp(params)))

    def on_response_received(self, params: dict[str, Any]) -> None:
        """Handle ``Network.responseReceived``."""
        request_id = params["requestId"]
        exchange = self.last(request_id)
        if exchange is None:
            log.debug("Response for untracked request", {"requestId": request_id})
            return
        exchange.response = NetworkResponse.from_cdp(request_id, params.get("response", {}))

    def on_loading_failed(self, params: dict[str, Any]) -> None:
        """Handle ``Network.loadingFailed``."""
        exchange = self.last(params["requestId"])
        if exchange is not None:
            exchange.error_text = params.get("errorText", "")

    def _append(self, exchange: NetworkExchange) -> None:
        if len(self._exchanges) >= self._max_exchanges:
            if not self._limit_logged:
                log.debug("Exchange tracking limit reached, evicting oldest", {"limit": self._max_exchanges})
                self._limit_logged = True
            self._evict_oldest()

        self._exchanges.append(exchange)
        self._by_request_id.setdefault(exchange.request_id, []).append(exchange)

    def _evict_oldest(self) -> None:
        oldest = self._exchanges.popleft()
        siblings = self._by_request_id.get(oldest.request_id)
        if siblings:
            # The globally oldest exchange is also the oldest for its id.
            siblings.pop(0)
            if not siblings:
                del self._by_request_id[oldest.request_id]
