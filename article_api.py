"""REST client for the article store API."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

import requests

from errors import ConflictError, NetworkError
from models import ArticleRecord

ARTICLE_API_BASE_URL = os.getenv("ARTICLE_API_BASE_URL", "http://localhost:5000/api")
REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


class ApiArticleStore:
    """Article store backed by the ``/articles`` REST resource.

    The API enforces ``sourceUrl`` uniqueness and answers duplicates with
    HTTP 409, which is surfaced as :class:`ConflictError`.
    """

    def __init__(self, base_url: str | None = None, timeout: float = REQUEST_TIMEOUT_SECONDS) -> None:
        self.base_url = (base_url or ARTICLE_API_BASE_URL).rstrip("/")
        self.timeout = timeout

    def find_all(self) -> list[ArticleRecord]:
        body = self._request("GET", "/articles")
        data = body.get("data") if body.get("success") else None
        if not isinstance(data, list):
            return []
        articles = [ArticleRecord.from_payload(item) for item in data if isinstance(item, dict)]
        LOGGER.info("Fetched %s articles from %s", len(articles), self.base_url)
        return articles

    def find_by_key(self, source_url: str) -> ArticleRecord | None:
        # The API only exposes lookups by document id.
        for record in self.find_all():
            if record.source_url == source_url:
                return record
        return None

    def create(self, record: ArticleRecord) -> ArticleRecord:
        body = self._request("POST", "/articles", json_payload=record.to_payload())
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict):
            raise NetworkError(f"Article create failed: {json.dumps(body)[:500]}")
        created = ArticleRecord.from_payload(data)
        LOGGER.info("Created article id=%s source_url=%s", created.record_id, created.source_url)
        return created

    def _request(
        self,
        method: str,
        path: str,
        json_payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method=method,
                url=url,
                headers={"Content-Type": "application/json"},
                json=json_payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"Article API {method} {url} failed: {exc}") from exc

        if response.status_code == 409:
            raise ConflictError(f"Article already exists: {_error_message(response)}")
        if not response.ok:
            raise NetworkError(
                f"Article API {method} {url} returned {response.status_code}: {_error_message(response)}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"Article API {method} {url} returned invalid JSON") from exc
        return body if isinstance(body, dict) else {}


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return json.dumps(body)[:500]
