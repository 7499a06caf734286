"""browser-agent: an automated Chromium session with cookie files, proxy
normalization, and correlated network event subscriptions.

Prefer importing from the specific submodule (e.g. ``browser_agent.models.cookie``).
"""

from browser_agent.browser.agent import Agent as Agent
from browser_agent.browser.cookie_file import CookieFile as CookieFile
from browser_agent.browser.events import EventRouter as EventRouter, Subscription as Subscription
from browser_agent.browser.mixin import BrowserMixin as BrowserMixin
from browser_agent.config import AgentSettings as AgentSettings
from browser_agent.models.cookie import Cookie as Cookie
from browser_agent.models.network import (
    NetworkExchange as NetworkExchange,
    NetworkRequest as NetworkRequest,
    NetworkResponse as NetworkResponse,
)
from browser_agent.models.proxy import ProxyConfig as ProxyConfig, normalize_proxy as normalize_proxy
from browser_agent.utils.errors import (
    BrowserAgentError as BrowserAgentError,
    InvalidArgumentError as InvalidArgumentError,
    MalformedCookieError as MalformedCookieError,
)
