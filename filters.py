"""Heuristic URL filter for reference candidates (no network calls)."""

from __future__ import annotations

import os
import re
from urllib.parse import urlparse

SITE_DOMAIN = os.getenv("SITE_DOMAIN", "beyondchats.com")

# Hosts that rarely carry long-form articles worth imitating: social
# platforms, encyclopedias, marketplaces, search engines, video sites.
_EXCLUDED_DOMAINS: frozenset[str] = frozenset({
    "youtube.com",
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "linkedin.com",
    "pinterest.com",
    "tiktok.com",
    "reddit.com",
    "quora.com",
    "wikipedia.org",
    "amazon.com",
    "ebay.com",
    "google.com",
    "bing.com",
    "yahoo.com",
})

# Tokens that suggest a long-form article rather than a landing page.
_LONG_FORM_TOKENS: tuple[str, ...] = (
    "blog",
    "article",
    "post",
    "news",
    "guide",
    "tutorial",
    "how-to",
    "tips",
    "insights",
    "stories",
)

_YEAR_SEGMENT_RE = re.compile(r"/(?:19|20)\d{2}(?:/|$)")
_MIN_URL_SEGMENTS = 3


def is_valid_external_url(url: object, own_domain: str | None = None) -> bool:
    """Return True if the URL looks like an external long-form article.

    Decision logic:
    - False: empty/malformed, own publishing domain, or excluded host.
    - False: scheme is not http/https.
    - True: a long-form token or year segment is present, OR the URL
      splits into more than three slash-separated parts.
    """
    if not isinstance(url, str) or not url.strip():
        return False

    lower_url = url.strip().lower()
    own = (own_domain or SITE_DOMAIN).lower()
    if own and own in lower_url:
        return False

    try:
        parsed = urlparse(lower_url)
        host = parsed.hostname or ""
    except ValueError:
        return False
    if not host:
        return False

    if _is_excluded_host(host):
        return False

    if parsed.scheme not in ("http", "https"):
        return False

    has_long_form_token = any(tok in lower_url for tok in _LONG_FORM_TOKENS)
    has_year_segment = bool(_YEAR_SEGMENT_RE.search(parsed.path))
    has_content_path = len(lower_url.split("/")) > _MIN_URL_SEGMENTS

    return has_long_form_token or has_year_segment or has_content_path


def _is_excluded_host(host: str) -> bool:
    return any(host == domain or host.endswith(f".{domain}") for domain in _EXCLUDED_DOMAINS)
