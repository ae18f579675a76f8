"""Categorization cache for virtual tool grouping.

Categorizing a toolset costs a model call, so results are cached by the
exact content of the tool list. The grouper calls ``flush`` once per
grouping request; entries that were not used since the previous flush are
dropped, so the cache only ever holds the categorizations of the current and
previous request.
"""

import asyncio
import hashlib
import json
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, runtime_checkable

from toolscope.lib.logging_config import get_logger
from toolscope.lib.virtual_tools.models import SummarizedToolCategory
from toolscope.models.tool import ToolInfo

logger = get_logger(__name__)

CategorizationResult = list[SummarizedToolCategory] | None
ComputeCategorization = Callable[[], Awaitable[CategorizationResult]]


@runtime_checkable
class ToolGroupingCache(Protocol):
    """Cache of categorization results keyed by tool list content."""

    async def get_or_insert(
        self, tools: Sequence[ToolInfo], compute: ComputeCategorization
    ) -> CategorizationResult:
        """Return the cached result for ``tools`` or compute and store it.

        At most one computation per distinct key is in flight at a time.
        """
        ...

    def flush(self) -> None:
        """End the current generation."""
        ...


def tool_list_key(tools: Sequence[ToolInfo]) -> str:
    """Content hash of a tool list (order sensitive)."""
    payload = json.dumps([[t.name, t.description] for t in tools], ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class InMemoryToolGroupingCache:
    """Process-local ToolGroupingCache.

    Failed computations (None or an exception) are not cached.
    """

    def __init__(self) -> None:
        self._current: dict[str, list[SummarizedToolCategory]] = {}
        self._previous: dict[str, list[SummarizedToolCategory]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._current.keys() | self._previous.keys())

    def _lookup(self, key: str) -> list[SummarizedToolCategory] | None:
        if key in self._current:
            return self._current[key]
        if key in self._previous:
            self._current[key] = self._previous.pop(key)
            return self._current[key]
        return None

    async def get_or_insert(
        self, tools: Sequence[ToolInfo], compute: ComputeCategorization
    ) -> CategorizationResult:
        key = tool_list_key(tools)
        cached = self._lookup(key)
        if cached is not None:
            logger.debug(f"Categorization cache hit for {len(tools)} tools")
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._lookup(key)
            if cached is not None:
                return cached

            result = await compute()
            if result is not None:
                self._current[key] = result
            return result

    def flush(self) -> None:
        dropped = len(self._previous)
        self._previous = self._current
        self._current = {}
        self._locks = {k: v for k, v in self._locks.items() if v.locked()}
        if dropped:
            logger.debug(f"Dropped {dropped} stale categorization cache entries")
