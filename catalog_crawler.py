"""Seed discovery: crawl the source blog catalog for its oldest articles."""

from __future__ import annotations

import logging
import os
import re
import time
from typing import Any
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from errors import ConflictError, NetworkError
from extractor import UNTITLED, clean_text, extract_content, extract_outbound_links
from fetcher import fetch_html
from models import ArticleRecord, CrawlStats

CATALOG_BASE_URL = os.getenv("CATALOG_BASE_URL", "https://beyondchats.com/blogs/")
CATALOG_FETCH_TIMEOUT_SECONDS = 30
ARTICLES_TO_SEED = 5
ARTICLE_FETCH_DELAY_SECONDS = 1.0

_PAGINATION_SELECTOR = ".ct-pagination a, .page-numbers, .pagination a"
_PAGE_HREF_RE = re.compile(r"/page/(\d+)/?")
_PRIMARY_ARTICLE_SELECTOR = ".entry-title a"
_FALLBACK_ARTICLE_SELECTOR = "h2 a"
_ORIGINAL_TITLE_SELECTORS = ("h1", ".entry-title")

LOGGER = logging.getLogger(__name__)


def find_last_page_number(html: str) -> int:
    """Return the highest page number linked from the catalog pagination.

    Looks at ``/page/<N>/`` hrefs and bare numeric link text; defaults to 1
    when the catalog has no pagination.
    """
    soup = BeautifulSoup(html, "html.parser")
    page_numbers: list[int] = []

    for element in soup.select(_PAGINATION_SELECTOR):
        href = element.get("href") or ""
        match = _PAGE_HREF_RE.search(href)
        if match:
            page_numbers.append(int(match.group(1)))

        text = element.get_text(strip=True)
        if text.isdigit():
            page_numbers.append(int(text))

    if not page_numbers:
        LOGGER.info("No pagination found, assuming a single catalog page")
        return 1

    last_page = max(page_numbers)
    LOGGER.info("Catalog has %s pages", last_page)
    return last_page


def extract_article_urls(html: str, base_url: str = CATALOG_BASE_URL) -> list[str]:
    """Return article links from one catalog page, in page order."""
    soup = BeautifulSoup(html, "html.parser")

    urls = _article_links(soup, _PRIMARY_ARTICLE_SELECTOR, base_url)
    if not urls:
        urls = _article_links(soup, _FALLBACK_ARTICLE_SELECTOR, base_url)
    return urls


def catalog_page_url(page: int, base_url: str = CATALOG_BASE_URL) -> str:
    if page <= 1:
        return base_url
    return urljoin(_with_trailing_slash(base_url), f"page/{page}/")


def collect_oldest_urls(limit: int = ARTICLES_TO_SEED, base_url: str = CATALOG_BASE_URL) -> list[str]:
    """Walk the catalog from its last page backwards and return the oldest URLs.

    Each page lists newest first, so its links are reversed before being
    accumulated. This approximates oldest-first ordering; it is not verified
    against the site's actual chronology.

    Raises:
        NetworkError: the catalog root itself could not be fetched.
    """
    root_html = fetch_html(base_url, timeout=CATALOG_FETCH_TIMEOUT_SECONDS)
    last_page = find_last_page_number(root_html)

    collected: list[str] = []
    page = last_page
    while len(collected) < limit and page >= 1:
        page_url = catalog_page_url(page, base_url)
        LOGGER.info("Fetching catalog page %s: %s", page, page_url)
        try:
            page_html = root_html if page == 1 else fetch_html(page_url, timeout=CATALOG_FETCH_TIMEOUT_SECONDS)
        except NetworkError as exc:
            LOGGER.warning("Catalog page %s failed, skipping: %s", page, exc)
            page -= 1
            continue

        page_urls = extract_article_urls(page_html, base_url)
        LOGGER.info("Found %s articles on page %s", len(page_urls), page)
        collected.extend(reversed(page_urls))
        page -= 1

    return collected[:limit]


def crawl_oldest_articles(store: Any, limit: int = ARTICLES_TO_SEED, base_url: str = CATALOG_BASE_URL) -> CrawlStats:
    """Seed the store with the oldest catalog articles it does not hold yet."""
    stats = CrawlStats()
    oldest = collect_oldest_urls(limit=limit, base_url=base_url)
    stats.discovered = len(oldest)
    for index, url in enumerate(oldest, start=1):
        LOGGER.info("  %s. %s", index, url)

    existing = {record.source_url for record in store.find_all()}
    new_urls = [url for url in oldest if url not in existing]
    stats.skipped = len(oldest) - len(new_urls)
    LOGGER.info("Catalog crawl: %s already stored, %s new", stats.skipped, len(new_urls))

    for index, url in enumerate(new_urls):
        if index > 0:
            time.sleep(ARTICLE_FETCH_DELAY_SECONDS)

        record = _scrape_original(url)
        if record is None:
            stats.skipped += 1
            continue

        try:
            store.create(record)
        except ConflictError:
            stats.skipped += 1
            LOGGER.info("Skipped duplicate article: %s", url)
            continue
        except NetworkError as exc:
            stats.skipped += 1
            LOGGER.error("Failed saving article %s: %s", url, exc)
            continue

        stats.saved += 1
        LOGGER.info("Saved: %s", record.title)

    LOGGER.info(
        "Catalog crawl complete. discovered=%s saved=%s skipped=%s",
        stats.discovered,
        stats.saved,
        stats.skipped,
    )
    return stats


def _scrape_original(url: str) -> ArticleRecord | None:
    LOGGER.info("Scraping original article: %s", url)
    try:
        html = fetch_html(url, timeout=CATALOG_FETCH_TIMEOUT_SECONDS)
    except NetworkError as exc:
        LOGGER.warning("Could not fetch %s: %s", url, exc)
        return None

    scraped = extract_content(html, url)
    title = _page_title(html) or (scraped.title if scraped else "")
    if scraped is None or title in ("", UNTITLED) or not scraped.content:
        LOGGER.warning("Could not extract complete data from %s", url)
        return None

    return ArticleRecord(
        source_url=url,
        title=title,
        content=scraped.content,
        is_updated=False,
        references=tuple(extract_outbound_links(html, base_url=url)),
    )


def _page_title(html: str) -> str:
    # Catalog themes put the headline inside <header>, which extraction strips.
    soup = BeautifulSoup(html, "html.parser")
    for selector in _ORIGINAL_TITLE_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            text = clean_text(element.get_text(" "))
            if text:
                return text
    return ""


def _article_links(soup: BeautifulSoup, selector: str, base_url: str) -> list[str]:
    catalog_path = urlparse(base_url).path or "/"
    catalog_root = _with_trailing_slash(base_url)

    urls: list[str] = []
    for anchor in soup.select(selector):
        href = (anchor.get("href") or "").strip()
        if not href:
            continue
        try:
            absolute = urljoin(base_url, href)
            path = urlparse(absolute).path
        except ValueError:
            LOGGER.debug("Ignoring malformed catalog link: %r", href)
            continue
        if catalog_path not in path or _with_trailing_slash(absolute) == catalog_root:
            continue
        if "/page/" in path:
            continue
        if absolute not in urls:
            urls.append(absolute)
    return urls


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"
