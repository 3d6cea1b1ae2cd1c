"""
Tests for PoolAggregator: interleaving, caps, failure absorption, dispatch.
"""

import random

import pytest

from artfeed.errors import AllSourcesFailed, NotFound, SourceUnavailable, UnknownSource
from artfeed.models import Filters
from artfeed.pool import IdentifierPool, PoolAggregator, round_robin_merge


def _ids(tag, count):
    return [f"{tag}:{i}" for i in range(count)]


class TestRoundRobinMerge:

    def test_interleaves_by_index(self):
        merged = round_robin_merge([["a0", "a1", "a2"], ["b0"], ["c0", "c1"]])

        assert merged == ["a0", "b0", "c0", "a1", "c1", "a2"]

    def test_empty(self):
        assert round_robin_merge([]) == []


class TestBuild:
    """Tests for pool building."""

    @pytest.mark.asyncio
    async def test_index_zero_of_every_source_comes_first(self, make_source):
        sources = [
            make_source("met", _ids("met", 5)),
            make_source("aic", _ids("aic", 2)),
            make_source("cma", _ids("cma", 7)),
        ]
        aggregator = PoolAggregator(sources, rng=random.Random(1))

        pool = await aggregator.build(Filters())

        head = pool.identifiers[:3]
        assert sorted(identifier.split(":")[0] for identifier in head) == ["aic", "cma", "met"]
        assert len(pool) == 14
        assert len(set(pool.identifiers)) == 14

    @pytest.mark.asyncio
    async def test_per_source_cap(self, make_source):
        sources = [make_source("met", _ids("met", 1000)), make_source("aic", _ids("aic", 3))]
        aggregator = PoolAggregator(sources, per_source_cap=350)

        pool = await aggregator.build(Filters())

        met = [i for i in pool.identifiers if i.startswith("met:")]
        assert len(met) == 350
        assert len(pool) == 353

    @pytest.mark.asyncio
    async def test_failed_source_is_skipped(self, make_source):
        sources = [
            make_source("met", list_error=SourceUnavailable("down", source="met")),
            make_source("aic", _ids("aic", 4)),
        ]
        aggregator = PoolAggregator(sources)

        pool = await aggregator.build(Filters())

        assert sorted(pool.identifiers) == _ids("aic", 4)

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_absorbed(self, make_source):
        sources = [
            make_source("met", list_error=KeyError("objectIDs")),
            make_source("aic", _ids("aic", 1)),
        ]

        pool = await PoolAggregator(sources).build(Filters())

        assert pool.identifiers == ("aic:0",)

    @pytest.mark.asyncio
    async def test_all_sources_failing_raises(self, make_source):
        sources = [
            make_source("met", list_error=SourceUnavailable("down", source="met")),
            make_source("aic", list_error=NotFound("nothing", source="aic")),
        ]

        with pytest.raises(AllSourcesFailed) as excinfo:
            await PoolAggregator(sources).build(Filters())

        assert set(excinfo.value.errors) == {"met", "aic"}

    @pytest.mark.asyncio
    async def test_only_empty_lists_raises(self, make_source):
        with pytest.raises(AllSourcesFailed):
            await PoolAggregator([make_source("met", [])]).build(Filters())

    @pytest.mark.asyncio
    async def test_allowed_tags_restricts_sources(self, make_source):
        met = make_source("met", _ids("met", 3))
        aic = make_source("aic", _ids("aic", 3))

        pool = await PoolAggregator([met, aic]).build(Filters(), allowed_tags={"aic"})

        assert all(i.startswith("aic:") for i in pool.identifiers)
        assert met.list_calls == []

    @pytest.mark.asyncio
    async def test_allowed_tags_matching_nothing_raises(self, make_source):
        with pytest.raises(AllSourcesFailed):
            await PoolAggregator([make_source("met", ["met:1"])]).build(
                Filters(), allowed_tags={"yale"}
            )

    @pytest.mark.asyncio
    async def test_filters_forwarded(self, make_source):
        met = make_source("met", ["met:1"])
        filters = Filters(query="landscape", medium="Paintings")

        await PoolAggregator([met]).build(filters)

        assert met.list_calls == [filters]

    @pytest.mark.asyncio
    async def test_new_pool_has_empty_used_set(self, make_source):
        aggregator = PoolAggregator([make_source("met", ["met:1", "met:2"])])
        first = await aggregator.build(Filters())
        first.mark_used("met:1")

        second = await aggregator.build(Filters())

        assert second.used == set()

    def test_duplicate_tags_rejected(self, make_source):
        with pytest.raises(ValueError):
            PoolAggregator([make_source("met"), make_source("met")])


class TestResolveById:

    @pytest.mark.asyncio
    async def test_dispatches_by_tag(self, make_source):
        met = make_source("met", ["met:1"])
        aic = make_source("aic", ["aic:1"])
        aggregator = PoolAggregator([met, aic])

        record = await aggregator.resolve_by_id("aic:1")

        assert record.id == "aic:1"
        assert aic.resolve_calls == ["aic:1"]
        assert met.resolve_calls == []

    @pytest.mark.asyncio
    async def test_identifier_round_trips_unchanged(self, make_source):
        getty = make_source("getty", ["getty:a1b2:c3"])

        record = await PoolAggregator([getty]).resolve_by_id("getty:a1b2:c3")

        assert getty.resolve_calls == ["getty:a1b2:c3"]
        assert record.id == "getty:a1b2:c3"

    @pytest.mark.asyncio
    async def test_unknown_tag(self, make_source):
        aggregator = PoolAggregator([make_source("met")])

        with pytest.raises(UnknownSource):
            await aggregator.resolve_by_id("rijks:1")

        with pytest.raises(UnknownSource):
            await aggregator.resolve_by_id("no-tag")


class TestIdentifierPool:

    def test_remaining_excludes_used_and_avoided(self):
        pool = IdentifierPool(["met:1", "met:2", "aic:1"])
        pool.mark_used("met:1")

        assert pool.remaining({"aic:1"}) == ["met:2"]
        assert "met:1" in pool
        assert len(pool) == 3
