"""Serper (Google search) client used to discover reference articles."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from errors import ConfigurationError, NetworkError
from filters import is_valid_external_url
from models import CandidateReference

SERPER_API_URL = "https://google.serper.dev/search"
REQUEST_TIMEOUT_SECONDS = 15
DEFAULT_RESULT_COUNT = 2

LOGGER = logging.getLogger(__name__)


def search_references(query: str, n: int = DEFAULT_RESULT_COUNT) -> list[CandidateReference]:
    """Search for up to ``n`` external long-form articles related to ``query``.

    Asks the search service for ``2n`` results so the URL filter has some
    slack, then keeps results in ranking order until ``n`` are accepted.
    The returned list may be shorter than ``n``; callers must check.

    Raises:
        ConfigurationError: SERPER_API_KEY is not set.
        NetworkError: the request timed out or returned a non-2xx status.
    """
    api_key = os.getenv("SERPER_API_KEY")
    if not api_key:
        raise ConfigurationError("SERPER_API_KEY environment variable is required")

    LOGGER.info("Searching references for: %s", query)
    body = _call_serper(api_key=api_key, query=query, num=n * 2)

    accepted: list[CandidateReference] = []
    for item in _organic_results(body):
        url = item.get("link")
        if not is_valid_external_url(url):
            LOGGER.debug("Rejected reference candidate: %s", url)
            continue
        accepted.append(
            CandidateReference(
                url=url,
                title=_as_text(item.get("title")),
                snippet=_as_text(item.get("snippet")),
            )
        )
        if len(accepted) >= n:
            break

    LOGGER.info("Found %s valid external URLs for query=%r", len(accepted), query)
    return accepted


def _call_serper(api_key: str, query: str, num: int) -> dict[str, Any]:
    headers = {
        "X-API-KEY": api_key,
        "Content-Type": "application/json",
    }
    try:
        response = requests.post(
            SERPER_API_URL,
            headers=headers,
            json={"q": query, "num": num},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as exc:
        raise NetworkError(f"Search request failed for query={query!r}: {exc}") from exc
    except ValueError as exc:
        raise NetworkError(f"Search response was not valid JSON: {exc}") from exc

    return body if isinstance(body, dict) else {}


def _organic_results(body: dict[str, Any]) -> list[dict[str, Any]]:
    results = body.get("organic")
    if not isinstance(results, list):
        return []
    return [item for item in results if isinstance(item, dict)]


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
