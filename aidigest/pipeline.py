"""Main orchestration pipeline.

Runs the aggregate → synthesize cycle and, as a separate step, delivery.
"""

from __future__ import annotations

import logging
from typing import Sequence

import httpx
from jinja2 import Environment

from aidigest.cache import ExpiringCache
from aidigest.config import AppConfig
from aidigest.digest.renderer import build_environment
from aidigest.digest.sender import DeliveryDispatcher, DeliveryResult, RetryPolicy
from aidigest.digest.synthesizer import ContentSynthesizer
from aidigest.fetchers.aggregator import SourceAggregator
from aidigest.fetchers.base import NormalizedItem, SourceDescriptor

logger = logging.getLogger(__name__)


def serialize_feed(items: Sequence[NormalizedItem]) -> str:
    """One numbered line per item: ``(n) [source] title: description``."""
    return "\n".join(
        f"({index}) [{item.source}] {item.title}: {item.description}"
        for index, item in enumerate(items, start=1)
    )


class NewsletterPipeline:
    """Sequences aggregation, synthesis and (on request) delivery."""

    def __init__(
        self,
        aggregator: SourceAggregator,
        synthesizer: ContentSynthesizer,
        dispatcher: DeliveryDispatcher,
    ):
        self.aggregator = aggregator
        self.synthesizer = synthesizer
        self.dispatcher = dispatcher

    async def run(self) -> str:
        """Aggregate the sources and generate the newsletter HTML."""
        logger.info("Fetching data from sources")
        feed = await self.aggregator.aggregate()

        logger.info("Generating newsletter from %d items", len(feed))
        return await self.synthesizer.synthesize(serialize_feed(feed))

    async def deliver(self, content: str) -> DeliveryResult:
        return await self.dispatcher.dispatch(content)


def build_sources(config: AppConfig) -> list[SourceDescriptor]:
    return [SourceDescriptor(url=e["url"], name=e["name"]) for e in config.sources.endpoints]


def build_template_environment(config: AppConfig) -> Environment:
    """Template environment from config, with package defaults as fallback."""
    return build_environment(config.template_dir or None)


def build_pipeline(
    config: AppConfig,
    cache: ExpiringCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> NewsletterPipeline:
    """Wire up a pipeline whose stages share one cache.

    Args:
        config: Application config.
        cache: Cache to share; a fresh one with the configured TTL if omitted.
        transport: Optional httpx transport used by every stage.
    """
    if cache is None:
        cache = ExpiringCache(ttl=config.cache.ttl_minutes * 60)

    aggregator = SourceAggregator(
        build_sources(config),
        cache,
        items_per_source=config.sources.items_per_source,
        timeout=config.sources.request_timeout,
        transport=transport,
    )
    synthesizer = ContentSynthesizer(
        cache,
        build_template_environment(config),
        api_key=config.llm.api_key,
        base_url=config.llm.base_url,
        model=config.llm.model,
        referer=config.llm.referer,
        app_title=config.llm.title,
        timeout=config.llm.request_timeout,
        transport=transport,
    )
    dispatcher = DeliveryDispatcher(
        config.mail.endpoint,
        policy=RetryPolicy(
            max_attempts=config.mail.max_attempts,
            delay=config.mail.retry_delay,
        ),
        subject_prefix=config.mail.subject_prefix,
        timeout=config.mail.request_timeout,
        transport=transport,
    )
    return NewsletterPipeline(aggregator, synthesizer, dispatcher)
