"""Fetch and merge items from the configured discovery endpoints.

Sources are queried one at a time, in configuration order.  Each raw response
is cached under its own key and the merged feed under ``all_api_data``, so a
second pass inside the cache TTL makes no HTTP calls at all.  A source that
fails contributes nothing; the pass carries on with the next one.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from aidigest.cache import ExpiringCache
from aidigest.errors import SourceFetchError
from aidigest.fetchers.base import NormalizedItem, SourceDescriptor, SourceResult, normalize_item

logger = logging.getLogger(__name__)

FEED_CACHE_KEY = "all_api_data"
_REQUEST_TIMEOUT = 30.0
_ITEMS_PER_SOURCE = 5


def merge_results(results: Sequence[SourceResult]) -> list[NormalizedItem]:
    """Concatenate successful results in order, logging and dropping failures."""
    feed: list[NormalizedItem] = []
    for result in results:
        if result.error is not None:
            logger.warning("Skipping %s: %s", result.source, result.error.reason)
            continue
        feed.extend(result.items)
    return feed


class SourceAggregator:
    """Collects a normalised feed from a fixed, ordered list of sources."""

    def __init__(
        self,
        sources: Sequence[SourceDescriptor],
        cache: ExpiringCache,
        items_per_source: int = _ITEMS_PER_SOURCE,
        timeout: float = _REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.sources = list(sources)
        self.cache = cache
        self.items_per_source = items_per_source
        self._timeout = timeout
        self._transport = transport

    async def aggregate(self) -> list[NormalizedItem]:
        cached = self.cache.get(FEED_CACHE_KEY)
        if cached is not None:
            logger.info("Using cached feed (%d items)", len(cached))
            return list(cached)

        logger.info("No cached feed, fetching %d sources", len(self.sources))
        results: list[SourceResult] = []
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for source in self.sources:
                results.append(await self.fetch_source(client, source))

        feed = merge_results(results)
        self.cache.set(FEED_CACHE_KEY, list(feed))
        logger.info(
            "Aggregated %d items from %d/%d sources",
            len(feed), sum(1 for r in results if r.ok), len(results),
        )
        return feed

    async def fetch_source(self, client: httpx.AsyncClient, source: SourceDescriptor) -> SourceResult:
        """Fetch (or reuse) one source's payload and normalise it."""
        data = self.cache.get(source.cache_key)
        if data is not None:
            logger.info("Using cached data for %s", source.name)
        else:
            logger.info("Fetching fresh data for %s", source.name)
            try:
                data = await self._request(client, source)
            except SourceFetchError as exc:
                return SourceResult(source=source.name, error=exc)
            self.cache.set(source.cache_key, data)

        return SourceResult(source=source.name, items=self._extract(data, source.name))

    async def _request(self, client: httpx.AsyncClient, source: SourceDescriptor) -> Any:
        try:
            resp = await client.get(source.url)
        except httpx.RequestError as exc:
            raise SourceFetchError(source.name, str(exc)) from exc

        # The body is used whatever the status; only undecodable JSON fails.
        if not resp.is_success:
            logger.warning("%s: responded with status %d", source.name, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise SourceFetchError(
                source.name, f"invalid JSON (status {resp.status_code}): {exc}"
            ) from exc

    def _extract(self, data: Any, source_name: str) -> list[NormalizedItem]:
        if not isinstance(data, list):
            logger.debug("%s: response is not a list, no items", source_name)
            return []
        return [normalize_item(item, source_name) for item in data[: self.items_per_source]]
