"""LLM rewrite step: turn one original plus two references into an SEO rewrite."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from dataclasses import dataclass

import openai
from openai import OpenAI

from anthropic_client import claude_chat
from errors import ConfigurationError, NetworkError
from models import ArticleRecord, RewriteResult, ScrapedContent

REQUEST_TIMEOUT_SECONDS = 120
REWRITE_TEMPERATURE = 0.7
REWRITE_MAX_TOKENS = 2000
ORIGINAL_EXCERPT_CHARS = 3000
REFERENCE_EXCERPT_CHARS = 1500
REQUIRED_REFERENCES = 2

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Provider:
    """A generative service the rewrite step can talk to."""

    name: str
    api_key_env: str
    default_model: str
    base_url: str | None = None


PROVIDERS: dict[str, Provider] = {
    "groq": Provider(
        name="groq",
        api_key_env="GROQ_API_KEY",
        default_model="llama-3.1-8b-instant",
        base_url="https://api.groq.com/openai/v1",
    ),
    "openai": Provider(name="openai", api_key_env="OPENAI_API_KEY", default_model="gpt-4o-mini"),
    "anthropic": Provider(name="anthropic", api_key_env="ANTHROPIC_API_KEY", default_model="claude-sonnet-4-5"),
}

SYSTEM_PROMPT = """You are an expert content writer and SEO specialist. Your task is to rewrite articles to improve their quality, structure, and SEO performance while maintaining originality.

Guidelines:
- Improve clarity, readability, and flow
- Use proper heading structure (H2, H3)
- Include bullet points and lists where appropriate
- Match the professional tone and formatting style of top-ranking articles
- Ensure 100% original content - no direct copying
- Keep the core topic and key information intact
- Make it engaging and informative
- Optimize for SEO without keyword stuffing
- Use short paragraphs for better readability
- Do NOT use markdown bold (**text**) formatting"""

_TITLE_RE = re.compile(r"TITLE:[ \t]*(.+?)[ \t]*(?:\n|CONTENT:)")
_CONTENT_RE = re.compile(r"CONTENT:\s*(.+)", re.DOTALL)
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")
# A line whose only text is "References" (optionally a markdown heading or
# followed by a colon) starts a trailing references section.
_REFERENCES_HEADING_RE = re.compile(r"^[ \t]*(?:#{1,6}[ \t]*)?references[ \t]*:?[ \t]*$", re.IGNORECASE | re.MULTILINE)


def active_provider() -> Provider:
    """Return the provider selected by REWRITE_PROVIDER (default groq)."""
    name = os.getenv("REWRITE_PROVIDER", "groq").strip().lower()
    provider = PROVIDERS.get(name)
    if provider is None:
        raise ConfigurationError(
            f"Unknown REWRITE_PROVIDER={name!r}; expected one of {', '.join(sorted(PROVIDERS))}"
        )
    return provider


def rewrite_article(original: ArticleRecord, references: Sequence[ScrapedContent]) -> RewriteResult:
    """Rewrite ``original`` using the first two ``references`` as style guides.

    Raises:
        ValueError: fewer than two references were supplied.
        ConfigurationError: the active provider's API key is not set.
        NetworkError: the provider call failed or returned nothing.
    """
    if len(references) < REQUIRED_REFERENCES:
        raise ValueError(f"rewrite_article needs {REQUIRED_REFERENCES} references, got {len(references)}")
    refs = list(references[:REQUIRED_REFERENCES])

    provider = active_provider()
    api_key = os.getenv(provider.api_key_env)
    if not api_key:
        raise ConfigurationError(f"{provider.api_key_env} environment variable is required")

    user_prompt = build_user_prompt(original, refs)
    LOGGER.info("Sending rewrite request to %s for: %s", provider.name, original.title)
    completion = _complete(provider, api_key, user_prompt)

    result = parse_rewrite_response(completion, original.title, [ref.url for ref in refs])
    LOGGER.info("Rewrite complete (%s characters)", len(result.content))
    return result


def build_user_prompt(original: ArticleRecord, references: Sequence[ScrapedContent]) -> str:
    """Render the user message with truncated excerpts of the original and two references."""
    ref1, ref2 = references[0], references[1]
    return f"""Please rewrite the following article to make it more engaging, well-structured, and SEO-friendly. Study the reference articles for formatting style and structure inspiration, but create completely original content.

=== ORIGINAL ARTICLE ===
Title: {original.title}

Content:
{original.content[:ORIGINAL_EXCERPT_CHARS]}

=== REFERENCE ARTICLE 1 (for style/structure inspiration only) ===
Title: {ref1.title}

Content (excerpt):
{ref1.content[:REFERENCE_EXCERPT_CHARS]}

=== REFERENCE ARTICLE 2 (for style/structure inspiration only) ===
Title: {ref2.title}

Content (excerpt):
{ref2.content[:REFERENCE_EXCERPT_CHARS]}

=== INSTRUCTIONS ===
1. Create a new, improved version of the original article
2. Use the reference articles ONLY for formatting and structure inspiration
3. Write completely original content - do not copy from references
4. Improve the title for better SEO
5. Use proper markdown formatting (## for H2, ### for H3, bullet points, etc.)
6. Do NOT use bold (**text**) formatting
7. Make it comprehensive and valuable to readers
8. Do NOT include a References section - it will be added automatically

Please provide your response in the following format:
TITLE: <improved SEO-friendly title>

CONTENT:
<rewritten article content with proper markdown formatting>"""


def parse_rewrite_response(text: str, fallback_title: str, reference_urls: Sequence[str]) -> RewriteResult:
    """Parse a ``TITLE:`` / ``CONTENT:`` completion into a RewriteResult.

    Missing markers degrade silently: no TITLE keeps ``fallback_title`` and
    no CONTENT uses the whole completion as the body.
    """
    title = fallback_title
    title_match = _TITLE_RE.search(text)
    if title_match and title_match.group(1).strip():
        title = title_match.group(1).strip()

    content = text
    content_match = _CONTENT_RE.search(text)
    if content_match:
        content = content_match.group(1)

    body = strip_references_section(normalize_content(content))
    urls = tuple(reference_urls)
    return RewriteResult(
        title=title,
        content=f"{body}\n\n{format_reference_block(urls)}".strip(),
        references=urls,
    )


def normalize_content(content: str) -> str:
    """Drop bold markers and collapse runs of blank lines."""
    content = _BOLD_RE.sub(r"\1", content)
    content = _EXTRA_BLANK_LINES_RE.sub("\n\n", content)
    return content.strip()


def strip_references_section(content: str) -> str:
    """Cut a trailing section headed "References", if the model wrote one."""
    match = _REFERENCES_HEADING_RE.search(content)
    if match is None:
        return content
    return content[: match.start()].strip()


def format_reference_block(urls: Sequence[str]) -> str:
    """Numbered "References:" list in the given order."""
    lines = [f"{index}. {url}" for index, url in enumerate(urls, start=1)]
    return "\n".join(["References:", *lines])


def _complete(provider: Provider, api_key: str, user_prompt: str) -> str:
    model = os.getenv("REWRITE_MODEL") or provider.default_model
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]

    if provider.name == "anthropic":
        content = claude_chat(
            messages,
            max_tokens=REWRITE_MAX_TOKENS,
            temperature=REWRITE_TEMPERATURE,
            timeout=REQUEST_TIMEOUT_SECONDS,
            model=model,
        )
    else:
        client = OpenAI(
            api_key=api_key,
            base_url=provider.base_url,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )
        try:
            response = client.chat.completions.create(
                model=model,
                temperature=REWRITE_TEMPERATURE,
                max_tokens=REWRITE_MAX_TOKENS,
                messages=messages,
            )
        except openai.OpenAIError as exc:
            raise NetworkError(f"{provider.name} rewrite request failed: {exc}") from exc
        content = response.choices[0].message.content

    if not content:
        raise NetworkError(f"{provider.name} returned an empty completion")
    return content
