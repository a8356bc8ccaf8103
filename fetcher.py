"""Blocking HTML fetch shared by the catalog crawler and reference scraper."""

from __future__ import annotations

import logging

import requests

from errors import NetworkError

DEFAULT_TIMEOUT_SECONDS = 20

# Some blogs serve an empty shell or a 403 to the default requests agent.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

LOGGER = logging.getLogger(__name__)


def fetch_html(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """GET ``url`` and return the response body as text.

    Raises:
        NetworkError: on timeout, transport failure or non-2xx status.
    """
    LOGGER.debug("Fetching %s (timeout=%ss)", url, timeout)
    try:
        response = requests.get(url, headers=BROWSER_HEADERS, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise NetworkError(f"Failed to fetch {url}: {exc}") from exc
    return response.text
