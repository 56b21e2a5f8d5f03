"""Page navigation seam.

The controller redirects the user agent to the authorization server and,
after a successful exchange, rewrites the visible address to drop the
``code``/``state`` parameters. Both go through a ``Navigator``.
"""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable
from typing import Protocol
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def query_from_url(url: str) -> str:
    """Return the query component of a URL, without the leading ``?``."""
    return urlparse(url).query


class Navigator(Protocol):
    """Protocol for the host's navigation primitives.

    Allows different hosts:
    - Embedded web views (drive the view directly)
    - Desktop apps (open the system browser)
    - Tests (record calls)
    """

    def current_url(self) -> str:
        """The URL the user agent is currently on."""
        ...

    def navigate(self, url: str) -> None:
        """Transfer the browsing context to ``url``."""
        ...

    def replace_url(self, url: str) -> None:
        """Rewrite the visible address without navigating or reloading."""
        ...


class BrowserNavigator:
    """Navigator that hands redirects to the system browser.

    The host feeds in the URL it is handling (for example the callback URL
    received by a local HTTP server) and reads back ``current_url()`` after
    ``replace_url`` to learn where the user should land.

    Args:
        current_url: URL of the page being handled.
        opener: Callable that opens a URL. Defaults to ``webbrowser.open``.
    """

    def __init__(
        self,
        current_url: str,
        opener: Callable[[str], object] = webbrowser.open,
    ):
        self._current_url = current_url
        self._opener = opener

    def current_url(self) -> str:
        return self._current_url

    def navigate(self, url: str) -> None:
        logger.info(f"Opening browser for {urlparse(url).netloc}")
        self._opener(url)
        self._current_url = url

    def replace_url(self, url: str) -> None:
        self._current_url = url
