from unittest.mock import MagicMock, patch

import pytest

import catalog_crawler
from catalog_crawler import (
    catalog_page_url,
    collect_oldest_urls,
    crawl_oldest_articles,
    extract_article_urls,
    find_last_page_number,
)
from errors import ConflictError, NetworkError
from models import ArticleRecord

BASE = "https://beyondchats.com/blogs/"


def _listing(*slugs: str, pagination: str = "") -> str:
    items = "".join(
        f'<article><h2 class="entry-title"><a href="{BASE}{slug}/">{slug}</a></h2></article>'
        for slug in slugs
    )
    return f"<html><body>{items}<nav class='ct-pagination'>{pagination}</nav></body></html>"


def _article_page(title: str) -> str:
    return (
        "<html><body><article>"
        f'<h1 class="entry-title">{title}</h1>'
        '<div class="entry-content">'
        "<p>This original article body is long enough to be stored in the catalog.</p>"
        '<p>It links to <a href="https://acme.io/blog/source">an external source</a> for context.</p>'
        "</div></article></body></html>"
    )


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("catalog_crawler.time.sleep") as mock_sleep:
        yield mock_sleep


def test_find_last_page_number_from_hrefs_and_text() -> None:
    html = (
        "<div class='ct-pagination'>"
        f"<a href='{BASE}page/2/'>2</a>"
        f"<a href='{BASE}page/3/'>3</a>"
        f"<a href='{BASE}page/15/'>Last</a>"
        "</div>"
    )
    assert find_last_page_number(html) == 15


def test_find_last_page_number_defaults_to_one() -> None:
    assert find_last_page_number("<html><body><p>No pages</p></body></html>") == 1


def test_extract_article_urls_primary_selector() -> None:
    html = _listing("first-post", "second-post")
    assert extract_article_urls(html, BASE) == [f"{BASE}first-post/", f"{BASE}second-post/"]


def test_extract_article_urls_fallback_skips_pagination_and_root() -> None:
    html = (
        "<html><body>"
        f"<h2><a href='{BASE}'>All posts</a></h2>"
        f"<h2><a href='{BASE}page/2/'>Next</a></h2>"
        f"<h2><a href='/blogs/relative-post/'>Relative</a></h2>"
        "<h2><a href='https://elsewhere.com/post/'>Elsewhere</a></h2>"
        "</body></html>"
    )
    assert extract_article_urls(html, BASE) == [f"{BASE}relative-post/"]


def test_catalog_page_url() -> None:
    assert catalog_page_url(1, BASE) == BASE
    assert catalog_page_url(4, BASE) == f"{BASE}page/4/"


def test_collect_oldest_walks_backwards_and_reverses_each_page() -> None:
    pages = {
        BASE: _listing("p1-new", "p1-old", pagination=f"<a href='{BASE}page/3/'>3</a>"),
        f"{BASE}page/3/": _listing("p3-new", "p3-mid", "p3-old"),
        f"{BASE}page/2/": _listing("p2-new", "p2-mid", "p2-old"),
    }

    with patch("catalog_crawler.fetch_html", side_effect=lambda url, timeout: pages[url]) as mock_fetch:
        urls = collect_oldest_urls(limit=5, base_url=BASE)

    assert urls == [
        f"{BASE}p3-old/",
        f"{BASE}p3-mid/",
        f"{BASE}p3-new/",
        f"{BASE}p2-old/",
        f"{BASE}p2-mid/",
    ]
    # Page 1 is never reached once enough URLs are collected.
    fetched = [call.args[0] for call in mock_fetch.call_args_list]
    assert fetched == [BASE, f"{BASE}page/3/", f"{BASE}page/2/"]


def test_collect_oldest_continues_past_failing_page() -> None:
    def fake_fetch(url: str, timeout: float) -> str:
        if url == f"{BASE}page/3/":
            raise NetworkError("Failed to fetch: 503")
        if url == f"{BASE}page/2/":
            return _listing("p2-new", "p2-old")
        return _listing("p1-new", "p1-old", pagination=f"<a href='{BASE}page/3/'>3</a>")

    with patch("catalog_crawler.fetch_html", side_effect=fake_fetch):
        urls = collect_oldest_urls(limit=5, base_url=BASE)

    assert urls == [f"{BASE}p2-old/", f"{BASE}p2-new/", f"{BASE}p1-old/", f"{BASE}p1-new/"]


def test_crawl_saves_only_new_articles() -> None:
    oldest = [f"{BASE}a/", f"{BASE}b/", f"{BASE}c/"]
    store = MagicMock()
    store.find_all.return_value = [
        ArticleRecord(source_url=f"{BASE}a/", title="A", content="Already stored"),
    ]

    with patch("catalog_crawler.collect_oldest_urls", return_value=oldest), \
         patch("catalog_crawler.fetch_html", side_effect=lambda url, timeout: _article_page(url)):
        stats = crawl_oldest_articles(store, limit=3, base_url=BASE)

    assert stats.discovered == 3
    assert stats.saved == 2
    assert stats.skipped == 1

    saved = [call.args[0] for call in store.create.call_args_list]
    assert [record.source_url for record in saved] == [f"{BASE}b/", f"{BASE}c/"]
    assert all(record.is_updated is False for record in saved)
    assert saved[0].title == f"{BASE}b/"
    assert saved[0].references == ("https://acme.io/blog/source",)


def test_crawl_skips_pages_without_title() -> None:
    store = MagicMock()
    store.find_all.return_value = []
    untitled = "<html><body><article><p>" + "Body text without any heading element at all. " * 4 + "</p></article></body></html>"

    with patch("catalog_crawler.collect_oldest_urls", return_value=[f"{BASE}x/"]), \
         patch("catalog_crawler.fetch_html", return_value=untitled):
        stats = crawl_oldest_articles(store, base_url=BASE)

    store.create.assert_not_called()
    assert stats.saved == 0
    assert stats.skipped == 1


def test_crawl_treats_conflict_as_skip() -> None:
    store = MagicMock()
    store.find_all.return_value = []
    store.create.side_effect = [ConflictError("duplicate"), None]

    with patch("catalog_crawler.collect_oldest_urls", return_value=[f"{BASE}x/", f"{BASE}y/"]), \
         patch("catalog_crawler.fetch_html", side_effect=lambda url, timeout: _article_page("Title")):
        stats = crawl_oldest_articles(store, base_url=BASE)

    assert stats.saved == 1
    assert stats.skipped == 1


def test_crawl_waits_between_article_fetches(no_sleep: MagicMock) -> None:
    store = MagicMock()
    store.find_all.return_value = []

    with patch("catalog_crawler.collect_oldest_urls", return_value=[f"{BASE}x/", f"{BASE}y/", f"{BASE}z/"]), \
         patch("catalog_crawler.fetch_html", side_effect=lambda url, timeout: _article_page("Title")):
        crawl_oldest_articles(store, base_url=BASE)

    assert no_sleep.call_count == 2
    no_sleep.assert_called_with(catalog_crawler.ARTICLE_FETCH_DELAY_SECONDS)


def test_crawl_reads_title_from_entry_header() -> None:
    store = MagicMock()
    store.find_all.return_value = []
    page = (
        "<html><body><article>"
        '<header class="entry-header"><h1 class="entry-title">Headline In Header</h1></header>'
        '<div class="entry-content"><p>This original article body is long enough to be stored.</p></div>'
        "</article></body></html>"
    )

    with patch("catalog_crawler.collect_oldest_urls", return_value=[f"{BASE}x/"]), \
         patch("catalog_crawler.fetch_html", return_value=page):
        stats = crawl_oldest_articles(store, base_url=BASE)

    assert stats.saved == 1
    assert store.create.call_args.args[0].title == "Headline In Header"


def test_extract_article_urls_ignores_malformed_hrefs() -> None:
    html = (
        "<html><body>"
        "<h2 class='entry-title'><a href='http://[bad'>Broken</a></h2>"
        f"<h2 class='entry-title'><a href='{BASE}good-post/'>Good</a></h2>"
        "</body></html>"
    )
    assert extract_article_urls(html, BASE) == [f"{BASE}good-post/"]


def test_crawl_survives_malformed_link_in_article_body() -> None:
    store = MagicMock()
    store.find_all.return_value = []
    page = (
        "<html><body><article>"
        '<h1 class="entry-title">Title</h1>'
        '<div class="entry-content">'
        "<p>This original article body is long enough to be stored in the catalog.</p>"
        '<p>A <a href="http://[bad">broken link</a> and <a href="https://acme.io/blog/source">a good one</a>.</p>'
        "</div></article></body></html>"
    )

    with patch("catalog_crawler.collect_oldest_urls", return_value=[f"{BASE}x/"]), \
         patch("catalog_crawler.fetch_html", return_value=page):
        stats = crawl_oldest_articles(store, base_url=BASE)

    assert stats.saved == 1
    assert store.create.call_args.args[0].references == ("https://acme.io/blog/source",)
