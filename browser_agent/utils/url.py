"""
URL helpers for page links and request bookkeeping.
"""

from __future__ import annotations

from urllib import parse


def extract_domain(url: str) -> str:
    """Extract the hostname from a URL string."""
    try:
        parsed = parse.urlparse(url)
        return parsed.hostname or "unknown"
    except Exception:
        return "unknown"


def parse_url(url: str) -> parse.ParseResult:
    """Parse *url* into its components."""
    return parse.urlparse(url)


def resolve_links(base_url: str, links: list[str]) -> list[str]:
    """Resolve each link against *base_url*.

    Args:
        base_url: The URL of the page the links were found on.
        links: Raw ``href`` values, absolute or relative.

    Returns:
        Absolute URLs in the same order as *links*.
    """
    return [parse.urljoin(base_url, link) for link in links]
