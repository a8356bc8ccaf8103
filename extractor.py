"""Heuristic article text extraction from arbitrary HTML.

Extraction is driven by ordered selector lists rather than per-site
scrapers: boilerplate is stripped, the first matching title selector wins,
and the first matching content container is rendered into markdown-like
blocks (headings, paragraphs, bulleted list items).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from fetcher import fetch_html
from filters import SITE_DOMAIN
from models import ScrapedContent

REFERENCE_FETCH_TIMEOUT_SECONDS = 20
MAX_CONTENT_CHARS = 8000
MAX_FALLBACK_CHARS = 5000
MIN_CONTAINER_TEXT_CHARS = 200
MIN_USABLE_CONTENT_CHARS = 100
UNTITLED = "Untitled"

# Sites that reliably block or break plain HTTP scraping.
_RESTRICTED_DOMAINS: tuple[str, ...] = ("medium.com", "chatbotsmagazine.com")

_BOILERPLATE_SELECTORS: tuple[str, ...] = (
    "nav", "header", "footer", "aside", "script", "style", "noscript", "iframe",
    ".advertisement", ".ad", ".ads", ".sidebar", ".comments", ".comment",
    ".social-share", ".social", ".related-posts", ".related", ".newsletter",
    ".popup", ".modal", ".cookie", ".banner", ".menu", ".navigation",
    '[role="navigation"]', '[role="banner"]', '[role="complementary"]',
    ".author-bio", ".author-box", ".breadcrumb", ".pagination",
    ".wp-block-embed", ".embed", "video", "audio", "form", "button", "input",
    ".share-buttons", ".tags", ".categories", ".meta", ".post-meta",
)

# Most to least specific.
_TITLE_SELECTORS: tuple[str, ...] = (
    "h1.entry-title",
    "h1.post-title",
    "h1.article-title",
    "article h1",
    ".post h1",
    ".content h1",
    "h1",
)

_CONTAINER_SELECTORS: tuple[str, ...] = (
    "article .entry-content",
    "article .post-content",
    "article .content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".blog-content",
    ".content-area",
    "article",
    ".post",
    "main",
)

_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n(?:\s*\n)+")

LOGGER = logging.getLogger(__name__)


def _render_heading(element: Tag, text: str) -> str:
    marker = {"h2": "##", "h3": "###"}.get(element.name, "####")
    return f"{marker} {text}"


def _render_paragraph(element: Tag, text: str) -> str:
    return text


def _render_list_item(element: Tag, text: str) -> str:
    return f"• {text}"


@dataclass(frozen=True, slots=True)
class BlockRule:
    """Collect elements matching ``selector`` whose text exceeds ``min_length``."""

    selector: str
    min_length: int
    render: Callable[[Tag, str], str]


# Evaluated in order; each rule's blocks are appended in document order.
BLOCK_RULES: tuple[BlockRule, ...] = (
    BlockRule("h2, h3, h4, h5, h6", 2, _render_heading),
    BlockRule("p", 20, _render_paragraph),
    BlockRule("li", 10, _render_list_item),
)


def extract_content(html: str, url: str) -> ScrapedContent | None:
    """Extract title and markdown-like body text from raw HTML.

    Never raises: returns None when the document yields no text at all.
    """
    if not isinstance(html, str) or not html.strip():
        return None

    try:
        soup = _parse_and_strip(html)
        title = _extract_title(soup)
        content = _extract_body(soup)
    except Exception as exc:  # noqa: BLE001 - third-party markup
        LOGGER.warning("Extraction failed for %s: %s", url, exc)
        return None

    if not content:
        LOGGER.info("No usable text found at %s", url)
        return None

    return ScrapedContent(url=url, title=title or UNTITLED, content=content)


def extract_outbound_links(html: str, base_url: str = "", exclude_domain: str | None = None) -> list[str]:
    """Return unique external http(s) links from the article body, in order."""
    if not isinstance(html, str) or not html.strip():
        return []

    own = (exclude_domain or SITE_DOMAIN).lower()
    soup = _parse_and_strip(html)
    container = _first_container(soup) or soup

    links: dict[str, None] = {}
    for anchor in container.select("a[href]"):
        try:
            href = urljoin(base_url, anchor["href"].strip()) if base_url else anchor["href"].strip()
            scheme = urlparse(href).scheme
        except ValueError:
            LOGGER.debug("Ignoring malformed link: %r", anchor["href"])
            continue
        if scheme not in ("http", "https"):
            continue
        if own and own in href.lower():
            continue
        links.setdefault(href, None)
    return list(links)


def scrape_article(url: str, timeout: float = REFERENCE_FETCH_TIMEOUT_SECONDS) -> ScrapedContent | None:
    """Fetch ``url`` and extract it.

    Returns None for restricted domains and pages without text.

    Raises:
        NetworkError: the page could not be fetched.
    """
    lower_url = url.lower()
    if any(domain in lower_url for domain in _RESTRICTED_DOMAINS):
        LOGGER.info("Skipping restricted domain: %s", url)
        return None

    LOGGER.info("Scraping: %s", url)
    html = fetch_html(url, timeout=timeout)

    scraped = extract_content(html, url)
    if scraped is not None:
        LOGGER.info("Scraped %s characters from %s", len(scraped.content), url)
    return scraped


def clean_text(text: str) -> str:
    """Collapse whitespace runs to single spaces."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def _parse_and_strip(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(", ".join(_BOILERPLATE_SELECTORS)):
        # extract() tolerates elements already detached with their parent
        element.extract()
    return soup


def _extract_title(soup: BeautifulSoup) -> str:
    for selector in _TITLE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = clean_text(element.get_text(" "))
        if text:
            return text
    return ""


def _first_container(soup: BeautifulSoup) -> Tag | None:
    for selector in _CONTAINER_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            return element
    return None


def _extract_body(soup: BeautifulSoup) -> str:
    content = ""
    for selector in _CONTAINER_SELECTORS:
        container = soup.select_one(selector)
        if container is None:
            continue

        blocks = _collect_blocks(container)
        if blocks:
            content = "\n\n".join(blocks)
            break

        flattened = clean_text(container.get_text(" "))
        if len(flattened) > MIN_CONTAINER_TEXT_CHARS:
            content = flattened
            break

    if len(content) < MIN_USABLE_CONTENT_CHARS:
        page = soup.body or soup
        content = clean_text(page.get_text(" "))[:MAX_FALLBACK_CHARS]

    content = _BLANK_LINES_RE.sub("\n\n", content).strip()
    return content[:MAX_CONTENT_CHARS]


def _collect_blocks(container: Tag) -> list[str]:
    blocks: list[str] = []
    for rule in BLOCK_RULES:
        for element in container.select(rule.selector):
            text = clean_text(element.get_text(" "))
            if len(text) > rule.min_length:
                blocks.append(rule.render(element, text))
    return blocks
