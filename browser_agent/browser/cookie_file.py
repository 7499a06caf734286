"""
Line-oriented cookie files: one wire-format cookie string per line.

Saving is a plain overwrite and is not atomic; concurrent saves to the
same path must be serialized by the caller.
"""

from __future__ import annotations

import pathlib
from collections.abc import Iterable, Iterator

from browser_agent.models.cookie import Cookie
from browser_agent.utils import logger

log = logger.create_logger("CookieFile")


class CookieFile:
    """A file of cookies.

    Iterating parses the file lazily, one line at a time, and can be
    repeated; blank lines are skipped. The first malformed line raises
    ``MalformedCookieError`` and stops the iteration.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self._path = pathlib.Path(path).expanduser().resolve()

    @property
    def path(self) -> pathlib.Path:
        """The absolute path to the cookie file."""
        return self._path

    def __iter__(self) -> Iterator[Cookie]:
        with self._path.open(encoding="utf-8") as file:
            for line in file:
                line = line.rstrip("\r\n")
                if line.strip():
                    yield Cookie.parse(line)

    def load(self) -> list[Cookie]:
        """Parse every cookie in the file."""
        cookies = list(self)
        log.debug("Loaded cookies", {"path": str(self._path), "count": len(cookies)})
        return cookies

    @staticmethod
    def save(path: str | pathlib.Path, cookies: Iterable[Cookie]) -> int:
        """Write *cookies* to *path*, one per line, replacing its contents.

        Returns:
            The number of cookies written.
        """
        count = 0
        with pathlib.Path(path).expanduser().open("w", encoding="utf-8") as file:
            for cookie in cookies:
                file.write(f"{cookie}\n")
                count += 1
        log.debug("Saved cookies", {"path": str(path), "count": count})
        return count

    def __repr__(self) -> str:
        return f"CookieFile({str(self._path)!r})"


def load_cookies(path: str | pathlib.Path) -> Iterator[Cookie]:
    """Lazily parse the cookies stored at *path*."""
    return iter(CookieFile(path))


def save_cookies(path: str | pathlib.Path, cookies: Iterable[Cookie]) -> int:
    """Write *cookies* to *path*; see :meth:`CookieFile.save`."""
    return CookieFile.save(path, cookies)
