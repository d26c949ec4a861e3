"""Turns the aggregated feed text into a newsletter via a chat-completion API.

Results are cached under a short fingerprint of the input text.  The cache
holds both the raw model output and the rendered email, so a template change
only needs a re-render, not another completion call.
"""

from __future__ import annotations

import base64
import logging
from datetime import date
from typing import Any, Callable

import httpx
from jinja2 import Environment

from aidigest.cache import ExpiringCache
from aidigest.digest.markup import looks_like_html, markdown_to_html
from aidigest.digest.renderer import NEWSLETTER_TITLE, long_date, render_newsletter, render_prompt
from aidigest.errors import GenerationError

logger = logging.getLogger(__name__)

_FINGERPRINT_LENGTH = 40
_REQUEST_TIMEOUT = 120.0


def summary_cache_key(text: str) -> str:
    """Cache key from a prefix of the base64-encoded text.

    Inputs sharing the first 30 bytes map to the same key.
    """
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"summary_{encoded[:_FINGERPRINT_LENGTH]}"


def extract_content(data: Any) -> str | None:
    """Pull ``choices[0].message.content`` out of a completion response."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class ContentSynthesizer:
    """Generates the newsletter HTML from serialised feed text."""

    def __init__(
        self,
        cache: ExpiringCache,
        env: Environment,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "meta-llama/llama-4-scout:free",
        referer: str = "",
        app_title: str = "",
        timeout: float = _REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.cache = cache
        self.env = env
        self.model = model
        self._api_key = api_key
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._referer = referer
        self._app_title = app_title
        self._timeout = timeout
        self._transport = transport
        self._today = today

    async def synthesize(self, feed_text: str) -> str:
        key = summary_cache_key(feed_text)
        today = self._today()

        cached = self.cache.get(key)
        if cached:
            if cached.get("html_email"):
                logger.info("Using cached newsletter")
                return cached["html_email"]
            if cached.get("summary"):
                logger.info("Using cached summary, re-rendering template")
                return render_newsletter(cached["summary"], self.env, today)

        logger.info("No cached summary, calling completion API (%s)", self.model)
        summary = await self._complete(feed_text, today)

        if not looks_like_html(summary):
            logger.warning("Model returned non-HTML content, converting to basic HTML")
            summary = markdown_to_html(summary)

        html_email = render_newsletter(summary, self.env, today)
        self.cache.set(key, {"summary": summary, "html_email": html_email})
        logger.info("Newsletter generated (%d chars)", len(html_email))
        return html_email

    def build_messages(self, feed_text: str, today: date) -> list[dict[str, str]]:
        system_prompt = render_prompt(self.env, "newsletter_system.txt")
        user_prompt = render_prompt(
            self.env,
            "newsletter_user.txt",
            title=NEWSLETTER_TITLE,
            date_label=long_date(today),
            feed_text=feed_text,
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    async def _complete(self, feed_text: str, today: date) -> str:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._referer:
            headers["HTTP-Referer"] = self._referer
        if self._app_title:
            headers["X-Title"] = self._app_title
        payload = {"model": self.model, "messages": self.build_messages(feed_text, today)}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=payload, headers=headers)
            data = resp.json()
        except httpx.HTTPError as exc:
            raise GenerationError(f"Completion request failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError(
                f"Completion service returned invalid JSON (status {resp.status_code})"
            ) from exc

        content = extract_content(data)
        if content is None:
            logger.error("Completion error (status %d): %s", resp.status_code, data)
            raise GenerationError(
                "Failed to generate newsletter content",
                {"status": resp.status_code, "response": data},
            )
        return content
