"""CLI entrypoint for the article enhancement pipeline."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from article_api import ApiArticleStore
from catalog_crawler import ARTICLES_TO_SEED, crawl_oldest_articles
from csv_store import CsvArticleStore
from errors import ConfigurationError, NetworkError
from pipeline import run_pipeline


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Crawl source articles and publish SEO-enhanced rewrites")
    parser.add_argument(
        "--mode",
        choices=["enhance", "crawl"],
        default="enhance",
        help=(
            "'enhance' (default): search, scrape, rewrite and publish every original "
            "without an enhanced version. 'crawl': seed the store with the oldest catalog articles."
        ),
    )
    parser.add_argument(
        "--store",
        choices=["api", "csv"],
        default="api",
        help="Article store backend: the REST API (ARTICLE_API_BASE_URL) or a local CSV (ARTICLE_CSV_PATH)",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of articles to handle")
    return parser.parse_args(argv)


def build_store(kind: str) -> ApiArticleStore | CsvArticleStore:
    if kind == "csv":
        return CsvArticleStore()
    return ApiArticleStore()


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the selected mode."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)
    store = build_store(args.store)

    try:
        if args.mode == "crawl":
            crawl_oldest_articles(store, limit=args.limit or ARTICLES_TO_SEED)
        else:
            stats = run_pipeline(store, limit=args.limit)
            logging.info("Stats: %s", stats.as_dict())
    except ConfigurationError as exc:
        logging.error("Configuration error: %s", exc)
        return 1
    except NetworkError as exc:
        logging.error("Run aborted: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
