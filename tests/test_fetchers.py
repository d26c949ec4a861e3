"""Tests for source normalisation and aggregation."""

from __future__ import annotations

import httpx
import pytest

from aidigest.errors import SourceFetchError
from aidigest.fetchers.aggregator import FEED_CACHE_KEY, SourceAggregator, merge_results
from aidigest.fetchers.base import (
    NO_DESCRIPTION,
    NO_TITLE,
    NormalizedItem,
    SourceDescriptor,
    SourceResult,
    normalize_item,
)

from tests.conftest import RecordingTransport

SOURCES = [
    SourceDescriptor(url="https://src.test/repos", name="GitHub"),
    SourceDescriptor(url="https://src.test/devs", name="GitHub Developer"),
    SourceDescriptor(url="https://src.test/papers", name="Hugging face research papers"),
    SourceDescriptor(url="https://src.test/trending", name="HuggingFace"),
]


def _items(prefix: str, count: int) -> list[dict]:
    return [
        {"title": f"{prefix}{i}", "description": f"about {prefix}{i}", "url": f"https://x/{prefix}{i}"}
        for i in range(1, count + 1)
    ]


def _aggregator(cache, transport, sources=SOURCES, **kwargs) -> SourceAggregator:
    return SourceAggregator(sources, cache, transport=transport, **kwargs)


class TestNormalizeItem:
    def test_alternate_fields(self):
        item = normalize_item({"name": "X", "content": "Y", "link": "Z"}, "GitHub")
        assert item == NormalizedItem(title="X", description="Y", url="Z", source="GitHub")

    def test_empty_object_uses_sentinels(self):
        item = normalize_item({}, "GitHub")
        assert item == NormalizedItem(
            title=NO_TITLE, description=NO_DESCRIPTION, url="", source="GitHub",
        )
        assert item.title == "No Title"
        assert item.description == "No Description"

    def test_preferred_fields_win(self):
        item = normalize_item(
            {"title": "T", "name": "N", "description": "D", "content": "C",
             "url": "U", "repo_url": "R"},
            "s",
        )
        assert (item.title, item.description, item.url) == ("T", "D", "U")

    def test_empty_values_fall_through(self):
        item = normalize_item({"title": "", "name": None, "id": "model/abc", "url": "", "repo_url": "R"}, "s")
        assert item.title == "model/abc"
        assert item.url == "R"

    def test_numeric_id_becomes_string(self):
        assert normalize_item({"id": 42}, "s").title == "42"

    def test_non_object_element(self):
        item = normalize_item("just a string", "HuggingFace")
        assert item.title == NO_TITLE
        assert item.source == "HuggingFace"


class TestSourceDescriptor:
    def test_cache_key_normalises_name(self):
        assert SourceDescriptor("u", "GitHub Developer").cache_key == "api_github_developer"
        assert SourceDescriptor("u", "Hugging  face\tpapers").cache_key == "api_hugging_face_papers"


class TestMergeResults:
    def test_drops_failures_and_keeps_order(self):
        a = NormalizedItem("a", "d", "", "A")
        b = NormalizedItem("b", "d", "", "B")
        results = [
            SourceResult(source="A", items=[a]),
            SourceResult(source="X", error=SourceFetchError("X", "boom")),
            SourceResult(source="B", items=[b]),
        ]
        assert merge_results(results) == [a, b]

    def test_all_failed_is_empty(self):
        results = [SourceResult(source="X", error=SourceFetchError("X", "boom"))]
        assert merge_results(results) == []


class TestSourceAggregator:
    @pytest.mark.asyncio
    async def test_partial_failure_scenario(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, json=_items("r", 3)),
            "https://src.test/devs": httpx.Response(200, json=_items("d", 3)),
            "https://src.test/papers": httpx.Response(200, json={"papers": _items("p", 3)}),
            "https://src.test/trending": httpx.ConnectError("connection refused"),
        })
        feed = await _aggregator(cache, transport).aggregate()

        assert len(feed) == 6
        assert [i.title for i in feed] == ["r1", "r2", "r3", "d1", "d2", "d3"]
        assert [i.source for i in feed] == ["GitHub"] * 3 + ["GitHub Developer"] * 3

    @pytest.mark.asyncio
    async def test_caps_items_per_source(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, json=_items("r", 8)),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:1]).aggregate()
        assert [i.title for i in feed] == ["r1", "r2", "r3", "r4", "r5"]

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_makes_no_requests(self, cache, clock):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, json=_items("r", 2)),
            "https://src.test/devs": httpx.Response(200, json=_items("d", 2)),
        })
        aggregator = _aggregator(cache, transport, sources=SOURCES[:2])

        first = await aggregator.aggregate()
        clock.advance(120)
        second = await aggregator.aggregate()

        assert first == second
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_refetches_after_ttl(self, cache, clock):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, json=_items("r", 2)),
        })
        aggregator = _aggregator(cache, transport, sources=SOURCES[:1])
        await aggregator.aggregate()
        clock.advance(601)
        await aggregator.aggregate()
        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_reuses_cached_source_payload(self, cache):
        cache.set("api_github", [{"name": "cached-repo"}])
        transport = RecordingTransport({
            "https://src.test/devs": httpx.Response(200, json=_items("d", 1)),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:2]).aggregate()

        assert [i.title for i in feed] == ["cached-repo", "d1"]
        assert transport.calls_to("https://src.test/repos") == []

    @pytest.mark.asyncio
    async def test_caches_raw_payload_regardless_of_shape(self, cache):
        payload = {"papers": []}
        transport = RecordingTransport({
            "https://src.test/papers": httpx.Response(200, json=payload),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[2:3]).aggregate()
        assert feed == []
        assert cache.get("api_hugging_face_research_papers") == payload

    @pytest.mark.asyncio
    async def test_malformed_json_contributes_nothing(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, text="<html>oops</html>"),
            "https://src.test/devs": httpx.Response(200, json=_items("d", 2)),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:2]).aggregate()
        assert [i.title for i in feed] == ["d1", "d2"]
        assert cache.get("api_github") is None

    @pytest.mark.asyncio
    async def test_error_status_with_object_body_contributes_nothing(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(503, json={"error": "down"}),
            "https://src.test/devs": httpx.Response(200, json=_items("d", 1)),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:2]).aggregate()
        assert [i.title for i in feed] == ["d1"]
        assert cache.get("api_github") == {"error": "down"}

    @pytest.mark.asyncio
    async def test_error_status_with_array_body_is_used_and_cached(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(503, json=[{"title": "t"}]),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:1]).aggregate()
        assert [i.title for i in feed] == ["t"]
        assert cache.get("api_github") == [{"title": "t"}]

    @pytest.mark.asyncio
    async def test_error_status_with_non_json_body_contributes_nothing(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(502, text="Bad Gateway"),
            "https://src.test/devs": httpx.Response(200, json=_items("d", 1)),
        })
        feed = await _aggregator(cache, transport, sources=SOURCES[:2]).aggregate()
        assert [i.title for i in feed] == ["d1"]
        assert cache.get("api_github") is None

    @pytest.mark.asyncio
    async def test_cached_feed_is_not_shared_with_callers(self, cache):
        transport = RecordingTransport({
            "https://src.test/repos": httpx.Response(200, json=_items("r", 2)),
        })
        aggregator = _aggregator(cache, transport, sources=SOURCES[:1])
        fresh = await aggregator.aggregate()
        fresh.append(NormalizedItem("extra", "d", "", "GitHub"))

        returned = await aggregator.aggregate()
        assert [i.title for i in returned] == ["r1", "r2"]
        returned.clear()

        again = await aggregator.aggregate()
        assert [i.title for i in again] == ["r1", "r2"]
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_all_sources_failing_yields_empty_feed(self, cache):
        transport = RecordingTransport({
            s.url: httpx.ConnectError("unreachable") for s in SOURCES
        })
        feed = await _aggregator(cache, transport).aggregate()
        assert feed == []
        assert cache.get(FEED_CACHE_KEY) == []

    @pytest.mark.asyncio
    async def test_fetch_source_reports_error(self, cache):
        transport = RecordingTransport({"https://src.test/repos": httpx.ReadTimeout("slow")})
        aggregator = _aggregator(cache, transport, sources=SOURCES[:1])
        async with httpx.AsyncClient(transport=transport) as client:
            result = await aggregator.fetch_source(client, SOURCES[0])
        assert not result.ok
        assert result.items == []
        assert result.error.source == "GitHub"
