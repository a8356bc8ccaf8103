"""CSV file article store for local and offline runs."""

from __future__ import annotations

import csv
import json
import logging
import os
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from errors import ConflictError
from models import ArticleRecord

ARTICLE_CSV_PATH = os.getenv("ARTICLE_CSV_PATH", "articles.csv")

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS = [
    "record_id",
    "source_url",
    "title",
    "content",
    "is_updated",
    "references",   # JSON-encoded list of URLs
    "created_at",
]


class CsvArticleStore:
    """Append-only article store kept in a single CSV file.

    Two uniqueness constraints are checked on every create:
    ``source_url`` across all rows, and the base URL across enhanced rows,
    so a second rewrite of the same original is rejected even when its
    ``#rewritten-<millis>`` suffix differs.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or ARTICLE_CSV_PATH)

    def find_all(self) -> list[ArticleRecord]:
        if not self.path.exists():
            return []

        with self.path.open(newline="", encoding="utf-8") as fh:
            return [_row_to_record(row) for row in csv.DictReader(fh)]

    def find_by_key(self, source_url: str) -> ArticleRecord | None:
        for record in self.find_all():
            if record.source_url == source_url:
                return record
        return None

    def create(self, record: ArticleRecord) -> ArticleRecord:
        for existing in self.find_all():
            if existing.source_url == record.source_url:
                raise ConflictError(f"Article with source_url={record.source_url} already exists")
            if record.is_updated and existing.is_updated and existing.base_url == record.base_url:
                raise ConflictError(f"Enhanced article for {record.base_url} already exists")

        stored = replace(
            record,
            record_id=record.record_id or uuid.uuid4().hex,
            created_at=record.created_at or datetime.now(UTC),
        )

        write_header = not self.path.exists() or self.path.stat().st_size == 0
        with self.path.open("a", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
            if write_header:
                writer.writeheader()
            writer.writerow(_record_to_row(stored))

        LOGGER.info("Wrote CSV row for source_url=%s to %s", stored.source_url, self.path)
        return stored


def _record_to_row(record: ArticleRecord) -> dict[str, str]:
    return {
        "record_id": record.record_id or "",
        "source_url": record.source_url,
        "title": record.title,
        "content": record.content,
        "is_updated": "true" if record.is_updated else "false",
        "references": json.dumps(list(record.references)),
        "created_at": record.created_at.isoformat() if record.created_at else "",
    }


def _row_to_record(row: dict[str, str]) -> ArticleRecord:
    try:
        references = json.loads(row.get("references") or "[]")
    except ValueError:
        references = []

    created_raw = row.get("created_at") or ""
    try:
        created_at = datetime.fromisoformat(created_raw) if created_raw else None
    except ValueError:
        created_at = None

    return ArticleRecord(
        source_url=row.get("source_url") or "",
        title=row.get("title") or "",
        content=row.get("content") or "",
        is_updated=(row.get("is_updated") or "").lower() == "true",
        references=tuple(str(ref) for ref in references) if isinstance(references, list) else (),
        created_at=created_at,
        record_id=row.get("record_id") or None,
    )
