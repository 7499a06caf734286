"""Shared serialization helpers for camelCase conversion.

Provides a single ``snake_to_camel`` implementation used by the
Pydantic model configs, so records validate directly from the
camelCase dicts the DevTools protocol produces.
"""

from __future__ import annotations


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"same_site"``.

    Returns:
        The camelCase equivalent, e.g. ``"sameSite"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])
