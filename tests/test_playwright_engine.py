"""Tests for browser_agent.browser.playwright_engine, with Playwright objects mocked."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest import mock

import pytest

from browser_agent.browser.engine import INSPECTOR_DETACHED, REQUEST_WILL_BE_SENT
from browser_agent.browser.playwright_engine import PlaywrightEngine, PlaywrightInterceptedRequest
from fakes import request_will_be_sent


def _handles() -> SimpleNamespace:
    """Mocked Playwright objects with the async methods the engine awaits."""
    page = mock.MagicMock()
    page.url = "https://example.com/"
    for name in ("goto", "route", "unroute", "query_selector_all", "query_selector", "evaluate", "add_init_script"):
        setattr(page, name, mock.AsyncMock())
    cdp = mock.MagicMock()
    cdp.send = mock.AsyncMock(return_value={})
    context = mock.MagicMock()
    context.close = mock.AsyncMock()
    browser = mock.MagicMock()
    browser.close = mock.AsyncMock()
    playwright = mock.MagicMock()
    playwright.stop = mock.AsyncMock()
    return SimpleNamespace(playwright=playwright, browser=browser, context=context, page=page, cdp=cdp)


def _engine(handles: SimpleNamespace) -> PlaywrightEngine:
    return PlaywrightEngine(handles.playwright, handles.browser, handles.context, handles.page, handles.cdp)


def _route(url: str = "https://example.com/") -> mock.MagicMock:
    route = mock.MagicMock()
    route.request.url = url
    route.request.method = "GET"
    route.continue_ = mock.AsyncMock()
    route.abort = mock.AsyncMock()
    route.fulfill = mock.AsyncMock()
    return route


class TestAttach:
    @pytest.mark.asyncio
    async def test_enables_domains(self) -> None:
        handles = _handles()
        await _engine(handles)._attach()
        sent = [c.args[0] for c in handles.cdp.send.await_args_list]
        assert sent == ["Network.enable", "Page.enable", "Inspector.enable"]

    @pytest.mark.asyncio
    async def test_tracks_requests(self) -> None:
        handles = _handles()
        engine = _engine(handles)
        await engine._attach()

        tracker = next(c.args[1] for c in handles.cdp.on.call_args_list if c.args[0] == REQUEST_WILL_BE_SENT)
        tracker(request_will_be_sent("1", "https://example.com/"))
        tracker(None)

        assert len(engine.network) == 1


class TestRawEvents:
    def test_devtools_events_use_cdp_session(self) -> None:
        handles = _handles()
        engine = _engine(handles)
        engine.on("Network.responseReceived", lambda payload: None)
        engine.on("Network.responseReceived", lambda payload: None)
        assert handles.cdp.on.call_count == 1
        handles.page.on.assert_not_called()

    def test_page_events_use_page(self) -> None:
        handles = _handles()
        engine = _engine(handles)
        engine.on("load", lambda payload: None)
        handles.page.on.assert_called_once()
        assert handles.page.on.call_args.args[0] == "load"

    def test_request_event_is_internal(self) -> None:
        handles = _handles()
        _engine(handles).on("request", lambda payload: None)
        handles.page.on.assert_not_called()
        handles.cdp.on.assert_not_called()

    def test_last_off_removes_forwarder(self) -> None:
        handles = _handles()
        engine = _engine(handles)

        def listener(payload: Any) -> None:
            pass

        engine.on("Page.loadEventFired", listener)
        engine.off("Page.loadEventFired", listener)
        handles.cdp.remove_listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_emit_awaits_async_listeners(self) -> None:
        engine = _engine(_handles())
        seen: list[Any] = []

        async def listener(payload: Any) -> None:
            seen.append(payload)

        engine.on("Page.loadEventFired", listener)
        await engine._emit("Page.loadEventFired", {"timestamp": 1.0})
        assert seen == [{"timestamp": 1.0}]

    @pytest.mark.asyncio
    async def test_close_is_reported_once(self) -> None:
        engine = _engine(_handles())
        seen: list[Any] = []
        engine.on(INSPECTOR_DETACHED, seen.append)

        await engine._on_page_close()
        await engine._on_browser_disconnected()

        assert seen == [{"reason": "page_closed"}]


class TestInterception:
    @pytest.mark.asyncio
    async def test_intercept_routes_once(self) -> None:
        handles = _handles()
        engine = _engine(handles)
        await engine.intercept()
        await engine.intercept()
        handles.page.route.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unhandled_route_is_continued(self) -> None:
        engine = _engine(_handles())
        urls: list[str] = []
        engine.on("request", lambda request: urls.append(request.url))

        route = _route()
        await engine._on_route(route)

        assert urls == ["https://example.com/"]
        route.continue_.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_aborted_route_is_not_continued(self) -> None:
        engine = _engine(_handles())

        async def block(request: PlaywrightInterceptedRequest) -> None:
            await request.abort()

        engine.on("request", block)
        route = _route()
        await engine._on_route(route)

        route.abort.assert_awaited_once_with("failed")
        route.continue_.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_respond_fulfils(self) -> None:
        route = _route()
        request = PlaywrightInterceptedRequest(route)
        await request.respond(status=204)
        assert request.is_handled is True
        route.fulfill.assert_awaited_once_with(status=204)


class TestCookies:
    @pytest.mark.asyncio
    async def test_cookies(self) -> None:
        handles = _handles()
        handles.cdp.send.return_value = {"cookies": [{"name": "foo", "value": "bar"}]}
        assert await _engine(handles).cookies() == [{"name": "foo", "value": "bar"}]
        handles.cdp.send.assert_awaited_once_with("Network.getAllCookies")

    @pytest.mark.asyncio
    async def test_rejected_cookie(self) -> None:
        handles = _handles()
        handles.cdp.send.return_value = {"success": False}
        with pytest.raises(RuntimeError, match="rejected cookie 'foo'"):
            await _engine(handles).set_cookie({"name": "foo", "value": "bar"})

    @pytest.mark.asyncio
    async def test_bypass_csp(self) -> None:
        handles = _handles()
        await _engine(handles).bypass_csp(True)
        handles.cdp.send.assert_awaited_once_with("Page.setBypassCSP", {"enabled": True})


class TestDom:
    @pytest.mark.asyncio
    async def test_xpath_uses_selector_prefix(self) -> None:
        handles = _handles()
        await _engine(handles).xpath("//a[@href]")
        handles.page.query_selector_all.assert_awaited_once_with("xpath=//a[@href]")

    @pytest.mark.asyncio
    async def test_inject_uses_init_script(self) -> None:
        handles = _handles()
        await _engine(handles).evaluate_on_new_document("window.x = 1")
        handles.page.add_init_script.assert_awaited_once_with("window.x = 1")


class TestQuit:
    @pytest.mark.asyncio
    async def test_closes_everything(self) -> None:
        handles = _handles()
        engine = _engine(handles)
        await engine.quit()

        handles.context.close.assert_awaited_once()
        handles.browser.close.assert_awaited_once()
        handles.playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_not_fatal(self) -> None:
        handles = _handles()
        handles.browser.close.side_effect = RuntimeError("already gone")
        engine = _engine(handles)
        await engine.quit()
        handles.playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_session_after_quit(self) -> None:
        engine = _engine(_handles())
        await engine.quit()
        with pytest.raises(RuntimeError, match="No browser session active"):
            await engine.go_to("https://example.com/")
