"""Shared fixtures for the test suite."""

from __future__ import annotations

import pathlib
from typing import Any

import pytest

from browser_agent.models.cookie import Cookie
from browser_agent.models.launch import LaunchOptions
from fakes import FakeEngine

FIXTURES_DIR = pathlib.Path(__file__).parent / "fixtures"

# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def engine() -> FakeEngine:
    """A fresh fake engine."""
    return FakeEngine()


@pytest.fixture()
def engine_factory(engine: FakeEngine):
    """Engine factory returning the ``engine`` fixture and recording its options."""

    async def factory(options: LaunchOptions) -> FakeEngine:
        engine.options = options
        return engine

    return factory


@pytest.fixture()
def cookie_file_path() -> pathlib.Path:
    """The two-cookie fixture file."""
    return FIXTURES_DIR / "cookies.txt"


@pytest.fixture()
def cdp_cookie() -> dict[str, Any]:
    """A cookie object as returned by ``Network.getAllCookies``."""
    return {
        "name": "OGP",
        "value": "-19027681:",
        "domain": ".google.com",
        "path": "/",
        "expires": 1691287370,
        "size": 13,
        "httpOnly": False,
        "secure": False,
        "session": False,
        "priority": "Medium",
        "sameParty": False,
        "sourceScheme": "Secure",
        "sourcePort": 443,
    }


@pytest.fixture()
def session_named_cookies() -> list[Cookie]:
    """Two cookies named like session cookies around one that is not."""
    return [
        Cookie(name="rack.session", value="a", domain="example.com"),
        Cookie(name="unrelated", value="b", domain="example.com"),
        Cookie(name="_foo_sess", value="c", domain="example.com"),
    ]
