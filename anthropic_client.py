"""Thin wrapper around the Anthropic Messages API."""

from __future__ import annotations

import logging
import os
from typing import Any

import anthropic

from errors import ConfigurationError, NetworkError

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"

LOGGER = logging.getLogger(__name__)


def claude_chat(
    messages: list[dict[str, str]],
    max_tokens: int = 1024,
    temperature: float = 0.7,
    timeout: float = 120,
    model: str | None = None,
) -> str:
    """Call the Claude API and return the assistant reply as a string.

    Args:
        messages: List of message dicts with "role" and "content" keys.
                  A "system" role message is extracted and passed via the
                  Anthropic API's dedicated system= parameter.
        max_tokens: Hard cap on output tokens.
        temperature: Sampling temperature.
        timeout: Request timeout in seconds.
        model: Model override; falls back to CLAUDE_MODEL, then the default.
    """
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ConfigurationError("ANTHROPIC_API_KEY environment variable is required")

    claude_model = model or os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL)
    client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)

    system: str | None = None
    filtered: list[dict[str, Any]] = []
    for msg in messages:
        if msg["role"] == "system":
            system = msg["content"]
        else:
            filtered.append({"role": msg["role"], "content": msg["content"]})

    kwargs: dict[str, Any] = {
        "model": claude_model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": filtered,
    }
    if system:
        kwargs["system"] = system

    LOGGER.debug("Calling Claude model=%s max_tokens=%s", claude_model, max_tokens)
    try:
        response = client.messages.create(**kwargs)
    except anthropic.APIError as exc:
        raise NetworkError(f"Claude request failed: {exc}") from exc

    return "".join(block.text for block in response.content if getattr(block, "type", "text") == "text")
