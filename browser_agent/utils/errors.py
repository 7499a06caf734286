"""
Exception types raised by the browser agent, plus a helper for
consistent error message extraction when logging.
"""


class BrowserAgentError(Exception):
    """Base class for errors raised by the browser agent itself."""


class InvalidArgumentError(BrowserAgentError, ValueError):
    """An argument had a shape the agent does not accept (e.g. a proxy value)."""


class MalformedCookieError(BrowserAgentError, ValueError):
    """A wire-format cookie string could not be parsed."""


def get_error_message(error: BaseException | object) -> str:
    """
    Safely extract an error message from an unknown error type.
    """
    if isinstance(error, Exception):
        return str(error) or type(error).__name__
    return "Unknown error"
