"""
Browser agent configuration.

Centralises the environment variable names and defaults for launching an
agent. Uses ``pydantic_settings.BaseSettings`` for environment binding,
type coercion, and validation. Settings are only read when a caller
builds an ``AgentSettings`` and passes it to ``Agent.from_settings()``;
nothing consults the environment implicitly.
"""

from __future__ import annotations

from typing import Any

import pydantic
import pydantic_settings

from browser_agent.utils import logger

log = logger.create_logger("Agent-Config")


class AgentSettings(pydantic_settings.BaseSettings):
    """Launch settings for a browser agent.

    Attributes:
        visible: Start the browser with a visible window.
        proxy: Proxy URL every browser request goes through.
        cookie_file: Cookie file to load after launch.
        url: URL to open after launch.
        channel: Browser distribution channel (e.g. ``chrome``).
    """

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    visible: bool = pydantic.Field(
        default=False, validation_alias="BROWSER_AGENT_VISIBLE"
    )
    proxy: str | None = pydantic.Field(
        default=None, validation_alias="BROWSER_AGENT_PROXY"
    )
    cookie_file: str | None = pydantic.Field(
        default=None, validation_alias="BROWSER_AGENT_COOKIE_FILE"
    )
    url: str | None = pydantic.Field(
        default=None, validation_alias="BROWSER_AGENT_URL"
    )
    channel: str | None = pydantic.Field(
        default=None, validation_alias="BROWSER_AGENT_CHANNEL"
    )

    @pydantic.field_validator("proxy", "cookie_file", "url", "channel", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def launch_kwargs(self) -> dict[str, Any]:
        """Return the keyword arguments for ``Agent.launch()``.

        Returns:
            Only the options that are set, so ``Agent.launch()`` defaults
            apply to the rest.
        """
        kwargs: dict[str, Any] = {"visible": self.visible}
        for name in ("proxy", "cookie_file", "url", "channel"):
            value = getattr(self, name)
            if value is not None:
                kwargs[name] = value
        log.debug("Resolved launch settings", {k: v for k, v in kwargs.items() if k != "proxy"})
        return kwargs
