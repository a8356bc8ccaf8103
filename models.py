"""Shared typed models for the enhancement pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

_REWRITTEN_SUFFIX_RE = re.compile(r"#rewritten.*$")


def base_source_url(source_url: str) -> str:
    """Strip any ``#rewritten...`` suffix from a stored source URL."""
    return _REWRITTEN_SUFFIX_RE.sub("", source_url)


@dataclass(frozen=True, slots=True)
class ArticleRecord:
    """One article as persisted in the article store."""

    source_url: str
    title: str
    content: str
    is_updated: bool = False
    references: tuple[str, ...] = ()
    created_at: datetime | None = None
    record_id: str | None = None

    @property
    def base_url(self) -> str:
        return base_source_url(self.source_url)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the store's camelCase JSON shape."""
        return {
            "title": self.title,
            "content": self.content,
            "sourceUrl": self.source_url,
            "isUpdated": self.is_updated,
            "references": list(self.references),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ArticleRecord:
        references = payload.get("references")
        return cls(
            source_url=str(payload.get("sourceUrl") or ""),
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            is_updated=payload.get("isUpdated") is True,
            references=tuple(str(ref) for ref in references) if isinstance(references, list) else (),
            created_at=_parse_datetime(payload.get("createdAt")),
            record_id=_as_str(payload.get("_id")),
        )


@dataclass(frozen=True, slots=True)
class CandidateReference:
    """Search result proposed as stylistic inspiration for a rewrite."""

    url: str
    title: str = ""
    snippet: str = ""


@dataclass(frozen=True, slots=True)
class ScrapedContent:
    """Text extracted from one HTML document."""

    url: str
    title: str
    content: str


@dataclass(frozen=True, slots=True)
class RewriteResult:
    title: str
    content: str
    references: tuple[str, ...]


class Stage(str, Enum):
    DISCOVER_REFS = "discover_refs"
    SCRAPE_REFS = "scrape_refs"
    REWRITE = "rewrite"
    PUBLISH = "publish"


class OutcomeStatus(str, Enum):
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ArticleOutcome:
    """Terminal state of one article's trip through the pipeline.

    ``stage`` is the stage the article was in when it resolved; it is None
    when the article was skipped before entering any stage.
    """

    status: OutcomeStatus
    stage: Stage | None = None
    reason: str = ""
    record: ArticleRecord | None = None

    @classmethod
    def done(cls, record: ArticleRecord) -> ArticleOutcome:
        return cls(status=OutcomeStatus.DONE, stage=Stage.PUBLISH, record=record)

    @classmethod
    def skipped(cls, reason: str, stage: Stage | None = None) -> ArticleOutcome:
        return cls(status=OutcomeStatus.SKIPPED, stage=stage, reason=reason)

    @classmethod
    def failed(cls, reason: str, stage: Stage | None = None) -> ArticleOutcome:
        return cls(status=OutcomeStatus.FAILED, stage=stage, reason=reason)


@dataclass(slots=True)
class PipelineRunStats:
    """Counters for a single controller run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[ArticleOutcome] = field(default_factory=list, repr=False)

    def record(self, outcome: ArticleOutcome) -> None:
        self.processed += 1
        if outcome.status is OutcomeStatus.DONE:
            self.succeeded += 1
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
        self.outcomes.append(outcome)

    def as_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass(slots=True)
class CrawlStats:
    """Counters for one catalog crawl."""

    discovered: int = 0
    saved: int = 0
    skipped: int = 0


def _parse_datetime(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None

    # Mongo-backed APIs return RFC3339 timestamps with trailing Z.
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
