"""Tests for browser_agent.browser.network and the network models."""

from __future__ import annotations

from browser_agent.browser.network import NetworkTraffic
from browser_agent.models.network import NetworkExchange, NetworkRequest, NetworkResponse
from fakes import request_will_be_sent, response_received


class TestNetworkModels:
    """Tests for the decoded request and response records."""

    def test_request_from_cdp(self) -> None:
        params = request_will_be_sent("7", "https://example.com/form", method="POST")
        params["request"]["postData"] = "a=1"

        request = NetworkRequest.from_cdp(params)
        assert request.request_id == "7"
        assert request.url == "https://example.com/form"
        assert request.method == "POST"
        assert request.headers == {"Accept": "*/*"}
        assert request.resource_type == "Document"
        assert request.post_data == "a=1"
        assert request.timestamp == 1000.0

    def test_response_from_cdp(self) -> None:
        response = NetworkResponse.from_cdp("7", response_received("7", "https://example.com/")["response"])
        assert response.request_id == "7"
        assert response.status == 200
        assert response.status_text == "OK"
        assert response.mime_type == "text/html"
        assert response.is_redirect is False

    def test_redirect_status(self) -> None:
        response = NetworkResponse(request_id="7", url="https://example.com/", status=302)
        assert response.is_redirect is True

    def test_exchange_state(self) -> None:
        exchange = NetworkExchange(request=NetworkRequest(request_id="7", url="https://example.com/"))
        assert exchange.request_id == "7"
        assert exchange.is_finished is False

        exchange.error_text = "net::ERR_ABORTED"
        assert exchange.is_finished is True

    def test_request_validates_camel_case(self) -> None:
        request = NetworkRequest.model_validate({"requestId": "7", "url": "https://example.com/", "resourceType": "Image"})
        assert request.resource_type == "Image"


class TestNetworkTraffic:
    """Tests for the per-request-id exchange table."""

    def test_request_opens_exchange(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/"))

        exchanges = traffic.select("1")
        assert len(exchanges) == 1
        assert exchanges[0].request.url == "https://example.com/"
        assert exchanges[0].response is None

    def test_response_completes_last_exchange(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/"))
        traffic.on_response_received(response_received("1", "https://example.com/"))

        exchange = traffic.last("1")
        assert exchange is not None
        assert exchange.response is not None
        assert exchange.response.status == 200

    def test_redirect_appends_exchange(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/old"))
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/new", redirect_status=302))
        traffic.on_response_received(response_received("1", "https://example.com/new"))

        first, second = traffic.select("1")
        assert first.request.url == "https://example.com/old"
        assert first.response is not None
        assert first.response.status == 302
        assert first.is_redirect is True
        assert second.request.url == "https://example.com/new"
        assert second.response is not None
        assert second.response.status == 200

    def test_unknown_id(self) -> None:
        traffic = NetworkTraffic()
        assert traffic.select("nope") == []
        assert traffic.last("nope") is None

    def test_response_for_untracked_request_is_ignored(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_response_received(response_received("1", "https://example.com/"))
        assert len(traffic) == 0

    def test_loading_failed(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/"))
        traffic.on_loading_failed({"requestId": "1", "errorText": "net::ERR_FAILED"})

        exchange = traffic.last("1")
        assert exchange is not None
        assert exchange.error_text == "net::ERR_FAILED"
        assert exchange.is_finished is True

    def test_select_returns_copy(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/"))
        traffic.select("1").clear()
        assert len(traffic.select("1")) == 1

    def test_evicts_oldest_when_full(self) -> None:
        traffic = NetworkTraffic(max_exchanges=2)
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/a"))
        traffic.on_request_will_be_sent(request_will_be_sent("2", "https://example.com/b"))
        traffic.on_request_will_be_sent(request_will_be_sent("3", "https://example.com/c"))

        assert len(traffic) == 2
        assert traffic.select("1") == []
        assert [e.request_id for e in traffic.exchanges] == ["2", "3"]

    def test_eviction_keeps_newer_hops_of_same_id(self) -> None:
        traffic = NetworkTraffic(max_exchanges=2)
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/old"))
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/new", redirect_status=301))
        traffic.on_request_will_be_sent(request_will_be_sent("2", "https://example.com/other"))

        remaining = traffic.select("1")
        assert [e.request.url for e in remaining] == ["https://example.com/new"]

    def test_clear(self) -> None:
        traffic = NetworkTraffic()
        traffic.on_request_will_be_sent(request_will_be_sent("1", "https://example.com/"))
        traffic.clear()
        assert len(traffic) == 0
        assert traffic.select("1") == []

    def test_eviction_over_many_exchanges(self) -> None:
        traffic = NetworkTraffic(max_exchanges=3)
        for index in range(10):
            traffic.on_request_will_be_sent(request_will_be_sent(str(index), f"https://example.com/{index}"))

        assert [e.request_id for e in traffic.exchanges] == ["7", "8", "9"]
        assert traffic.select("6") == []
