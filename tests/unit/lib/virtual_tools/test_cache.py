"""Unit tests for the categorization cache."""

import asyncio

import pytest

from toolscope.lib.virtual_tools.cache import (
    InMemoryToolGroupingCache,
    ToolGroupingCache,
    tool_list_key,
)
from toolscope.lib.virtual_tools.models import SummarizedToolCategory
from toolscope.models.tool import ToolInfo


def make_tools(*names: str) -> list[ToolInfo]:
    """Create builtin tools with the given names."""
    return [ToolInfo(name=n, description=f"Tool {n}") for n in names]


class CountingCompute:
    """Categorization callback that counts invocations."""

    def __init__(self, result: list[SummarizedToolCategory] | None) -> None:
        self.result = result
        self.calls = 0

    async def __call__(self) -> list[SummarizedToolCategory] | None:
        self.calls += 1
        await asyncio.sleep(0)
        return self.result


class TestToolListKey:
    """Tests for tool_list_key."""

    def test_same_content_same_key(self) -> None:
        """Test equal tool lists hash identically."""
        assert tool_list_key(make_tools("a", "b")) == tool_list_key(
            make_tools("a", "b")
        )

    def test_order_sensitive(self) -> None:
        """Test the key depends on tool order."""
        assert tool_list_key(make_tools("a", "b")) != tool_list_key(
            make_tools("b", "a")
        )

    def test_description_changes_key(self) -> None:
        """Test a changed description produces a different key."""
        before = [ToolInfo(name="a", description="old")]
        after = [ToolInfo(name="a", description="new")]

        assert tool_list_key(before) != tool_list_key(after)


class TestInMemoryToolGroupingCache:
    """Tests for InMemoryToolGroupingCache."""

    def test_satisfies_protocol(self) -> None:
        """Test the cache implements the ToolGroupingCache protocol."""
        assert isinstance(InMemoryToolGroupingCache(), ToolGroupingCache)

    @pytest.mark.asyncio
    async def test_caches_result(self) -> None:
        """Test a second lookup does not recompute."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="files")])
        tools = make_tools("a", "b")

        first = await cache.get_or_insert(tools, compute)
        second = await cache.get_or_insert(tools, compute)

        assert first == second
        assert compute.calls == 1
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_none_not_cached(self) -> None:
        """Test failed computations are retried on the next lookup."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute(None)
        tools = make_tools("a")

        assert await cache.get_or_insert(tools, compute) is None
        assert await cache.get_or_insert(tools, compute) is None

        assert compute.calls == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_exception_propagates_and_is_not_cached(self) -> None:
        """Test an exception from compute reaches the caller."""
        cache = InMemoryToolGroupingCache()
        tools = make_tools("a")

        async def failing() -> list[SummarizedToolCategory] | None:
            raise RuntimeError("model unavailable")

        with pytest.raises(RuntimeError, match="model unavailable"):
            await cache.get_or_insert(tools, failing)

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_single_flight_per_key(self) -> None:
        """Test concurrent lookups for one key compute once."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="files")])
        tools = make_tools("a", "b")

        results = await asyncio.gather(
            *(cache.get_or_insert(tools, compute) for _ in range(5))
        )

        assert compute.calls == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_distinct_keys_compute_separately(self) -> None:
        """Test different tool lists do not share entries."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="x")])

        await asyncio.gather(
            cache.get_or_insert(make_tools("a"), compute),
            cache.get_or_insert(make_tools("b"), compute),
        )

        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_entry_survives_one_flush(self) -> None:
        """Test entries are still available after a single flush."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="x")])
        tools = make_tools("a")

        await cache.get_or_insert(tools, compute)
        cache.flush()
        await cache.get_or_insert(tools, compute)

        assert compute.calls == 1

    @pytest.mark.asyncio
    async def test_unused_entry_dropped_after_two_flushes(self) -> None:
        """Test entries not used for a whole generation are evicted."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="x")])
        tools = make_tools("a")

        await cache.get_or_insert(tools, compute)
        cache.flush()
        cache.flush()

        assert len(cache) == 0
        await cache.get_or_insert(tools, compute)
        assert compute.calls == 2

    @pytest.mark.asyncio
    async def test_used_entry_promoted(self) -> None:
        """Test an entry used each generation is kept indefinitely."""
        cache = InMemoryToolGroupingCache()
        compute = CountingCompute([SummarizedToolCategory(name="x")])
        tools = make_tools("a")

        for _ in range(4):
            await cache.get_or_insert(tools, compute)
            cache.flush()

        assert compute.calls == 1
        assert len(cache) == 1
