"""Article enhancement controller: search, scrape, rewrite, publish.

Each original article moves through DISCOVER_REFS -> SCRAPE_REFS ->
REWRITE -> PUBLISH and resolves to exactly one ArticleOutcome. Articles are
processed one at a time with fixed delays between network-heavy steps.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from errors import ConfigurationError, ConflictError, NetworkError, ValidationError
from extractor import scrape_article
from models import (
    ArticleOutcome,
    ArticleRecord,
    CandidateReference,
    OutcomeStatus,
    PipelineRunStats,
    RewriteResult,
    ScrapedContent,
    Stage,
)
from rewriter import active_provider, rewrite_article
from search_client import search_references

MIN_REFERENCES = 2
MIN_SCRAPED_CHARS = 100
SCRAPE_DELAY_SECONDS = 1.0
ARTICLE_DELAY_SECONDS = 3.0

REASON_ALREADY_ENHANCED = "Updated version already exists"
REASON_NOT_ENOUGH_REFERENCES = "Not enough reference URLs"
REASON_NOT_ENOUGH_SCRAPES = "Failed to scrape enough references"
REASON_PUBLISH_CONFLICT = "Updated version already exists in store"

LOGGER = logging.getLogger(__name__)


def check_credentials() -> None:
    """Raise ConfigurationError naming every missing credential."""
    provider = active_provider()
    required = ["SERPER_API_KEY", provider.api_key_env]
    missing = [name for name in required if not os.getenv(name)]
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


def enhanced_base_urls(articles: Iterable[ArticleRecord]) -> set[str]:
    """Base URLs of every original that already has an enhanced version."""
    return {article.base_url for article in articles if article.is_updated}


def rewritten_source_url(original: ArticleRecord, now: datetime | None = None) -> str:
    """Derive the enhanced record key: `<source_url>#rewritten-<epoch millis>`."""
    moment = now or datetime.now(UTC)
    return f"{original.source_url}#rewritten-{int(moment.timestamp() * 1000)}"


def run_pipeline(store: Any, limit: int | None = None) -> PipelineRunStats:
    """Enhance every stored original that has no enhanced version yet.

    Raises:
        ConfigurationError: credentials are missing; nothing is processed.
    """
    check_credentials()
    provider = active_provider()
    LOGGER.info("Rewrite provider: %s", provider.name)

    articles = store.find_all()
    existing = enhanced_base_urls(articles)
    candidates = [article for article in articles if not article.is_updated]
    if limit is not None:
        candidates = candidates[:limit]

    LOGGER.info(
        "Original articles: %s, existing enhanced articles: %s",
        len(candidates),
        len(existing),
    )

    stats = PipelineRunStats()
    if not candidates:
        LOGGER.info("No articles need processing.")
        return stats

    for index, article in enumerate(candidates):
        LOGGER.info("Processing article %s/%s: %s (%s)", index + 1, len(candidates), article.title, article.source_url)
        outcome = process_article(article, existing, store)
        stats.record(outcome)

        if outcome.status is OutcomeStatus.DONE:
            existing.add(article.base_url)
            LOGGER.info("Article processed successfully: %s", article.title)
        else:
            LOGGER.info(
                "Article %s at stage=%s: %s",
                outcome.status.value,
                outcome.stage.value if outcome.stage else "-",
                outcome.reason,
            )

        if index < len(candidates) - 1:
            LOGGER.info("Waiting %ss before next article", ARTICLE_DELAY_SECONDS)
            time.sleep(ARTICLE_DELAY_SECONDS)

    LOGGER.info(
        "Run complete. processed=%s succeeded=%s failed=%s skipped=%s",
        stats.processed,
        stats.succeeded,
        stats.failed,
        stats.skipped,
    )
    return stats


def process_article(article: ArticleRecord, existing_base_urls: set[str], store: Any) -> ArticleOutcome:
    """Run one original through all stages and return its outcome.

    Never raises: insufficient input resolves as SKIPPED, any stage error as
    FAILED with the stage it happened in.
    """
    if article.base_url in existing_base_urls:
        return ArticleOutcome.skipped(REASON_ALREADY_ENHANCED)

    stage = Stage.DISCOVER_REFS
    try:
        candidates = discover_references(article)

        stage = Stage.SCRAPE_REFS
        scraped = scrape_references(candidates)

        stage = Stage.REWRITE
        rewrite = rewrite_article(article, scraped[:MIN_REFERENCES])

        stage = Stage.PUBLISH
        published = publish_rewrite(store, article, rewrite)
    except ValidationError as exc:
        return ArticleOutcome.skipped(str(exc), stage)
    except ConflictError as exc:
        LOGGER.info("Article already exists, skipping: %s", exc)
        return ArticleOutcome.skipped(REASON_PUBLISH_CONFLICT, stage)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed processing %s at stage=%s: %s", article.source_url, stage.value, exc)
        return ArticleOutcome.failed(str(exc), stage)

    return ArticleOutcome.done(published)


def discover_references(article: ArticleRecord) -> list[CandidateReference]:
    candidates = search_references(article.title, n=MIN_REFERENCES)
    if len(candidates) < MIN_REFERENCES:
        LOGGER.warning("Only found %s valid external URLs", len(candidates))
        raise ValidationError(REASON_NOT_ENOUGH_REFERENCES)
    return candidates


def scrape_references(candidates: Sequence[CandidateReference]) -> list[ScrapedContent]:
    """Scrape every candidate in order and keep the usable ones.

    Raises:
        NetworkError: too few references were usable and at least one fetch
            failed; the last fetch error is re-raised.
        ValidationError: every fetch succeeded but too few had enough text.
    """
    scraped: list[ScrapedContent] = []
    fetch_errors: list[NetworkError] = []
    for index, candidate in enumerate(candidates):
        if index > 0:
            time.sleep(SCRAPE_DELAY_SECONDS)
        try:
            result = scrape_article(candidate.url)
        except NetworkError as exc:
            LOGGER.warning("Scrape error for %s: %s", candidate.url, exc)
            fetch_errors.append(exc)
            continue
        if result is not None and len(result.content) > MIN_SCRAPED_CHARS:
            scraped.append(result)

    if len(scraped) < MIN_REFERENCES:
        LOGGER.warning("Only scraped %s references successfully", len(scraped))
        if fetch_errors:
            raise fetch_errors[-1]
        raise ValidationError(REASON_NOT_ENOUGH_SCRAPES)
    return scraped


def publish_rewrite(store: Any, original: ArticleRecord, rewrite: RewriteResult) -> ArticleRecord:
    record = ArticleRecord(
        source_url=rewritten_source_url(original),
        title=rewrite.title,
        content=rewrite.content,
        is_updated=True,
        references=rewrite.references,
    )
    LOGGER.info("Publishing rewritten article: %s", record.title[:50])
    return store.create(record)
