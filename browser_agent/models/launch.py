"""Pydantic model for the options an engine is launched with."""

from __future__ import annotations

from typing import Any

import pydantic

from browser_agent.models.proxy import ProxyConfig


class LaunchOptions(pydantic.BaseModel):
    """Normalized launch options handed to an engine factory.

    Attributes:
        headless: Start the browser without a visible window.
        proxy: Proxy every browser request goes through, if any.
        channel: Browser distribution channel (e.g. ``"chrome"``);
            ``None`` uses the bundled Chromium.
        extra: Additional keyword arguments for the engine's launch call.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    headless: bool = True
    proxy: ProxyConfig | None = None
    channel: str | None = None
    extra: dict[str, Any] = pydantic.Field(default_factory=dict)
