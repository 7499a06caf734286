"""Mixin giving a class a lazily launched, memoized browser agent."""

from __future__ import annotations

from typing import Any

from browser_agent.browser.agent import Agent
from browser_agent.utils import logger

log = logger.create_logger("BrowserMixin")


class BrowserMixin:
    """Adds an async ``browser()`` accessor to the including class."""

    _browser: Agent | None = None

    async def browser(self, **kwargs: Any) -> Agent:
        """Return the memoized agent, or launch a new one.

        Without keyword arguments the previously launched agent is
        returned, launching a default one on first use. With keyword
        arguments (any ``Agent.launch()`` option) a new agent is launched
        and replaces the memoized one, which is quit.
        """
        if not kwargs and self._browser is not None:
            return self._browser

        previous = self._browser
        self._browser = await Agent.launch(**kwargs)

        if previous is not None:
            log.debug("Replacing browser agent")
            await previous.quit()

        return self._browser
