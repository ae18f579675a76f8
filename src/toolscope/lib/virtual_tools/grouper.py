"""Virtual tool grouper.

Collapses a large tool inventory into named virtual tool groups so that the
number of tools presented to the model stays under a hard limit, then
re-expands the groups that are cheapest or most relevant to the query.

Per request the grouper:
1. Passes small inventories through unchanged.
2. Partitions tools by contributing source (extension, MCP server, builtin).
3. Categorizes each non-builtin toolset concurrently through the
   categorization cache and oracle, retrying and failing open to
   individually visible tools.
4. Deduplicates names across toolsets.
5. Carries expansion state over from the previous tree.
6. Optionally expands groups containing the tools most similar to the query.
7. Expands the smallest groups until the visible count reaches its target.
"""

import asyncio
import re
import time
from collections.abc import Callable, Sequence

from toolscope.lib.cancellation import NONE_TOKEN, CancellationToken
from toolscope.lib.errors import CancellationError
from toolscope.lib.logging_config import get_logger
from toolscope.lib.virtual_tools.cache import (
    CategorizationResult,
    InMemoryToolGroupingCache,
    ToolGroupingCache,
)
from toolscope.lib.virtual_tools.embeddings import (
    EmbeddingsComputer,
    PrecomputedToolEmbeddingsCache,
    ToolEmbeddingsComputer,
)
from toolscope.lib.virtual_tools.models import (
    SummarizedToolCategory,
    ToolsetGroupingRecord,
    VirtualToolMetadata,
    VirtualToolsConfig,
)
from toolscope.lib.virtual_tools.summarizer import (
    CategorizationOracle,
    category_key,
)
from toolscope.lib.virtual_tools.tree import (
    VIRTUAL_TOOL_NAME_PREFIX,
    ToolItem,
    VirtualTool,
)
from toolscope.models.tool import (
    BuiltinToolSource,
    ExtensionToolSource,
    McpToolSource,
    ToolInfo,
    ToolSource,
    VirtualGroupSource,
)

logger = get_logger(__name__)

BUILT_IN_GROUP = "builtin"
VIRTUAL_GROUP = "virtual_group"
SUMMARY_PREFIX = (
    "Call this tool when you need access to a new category of tools. "
    "The category of tools is described as follows:\n\n"
)
SUMMARY_SUFFIX = (
    "\n\nBe sure to call this tool if you need a capability related to the above."
)
POSSIBLE_PREFIX_MAX_LENGTH = 10

GroupingObserver = Callable[[ToolsetGroupingRecord], None]


def toolset_key(tool: ToolInfo) -> str:
    """Return the key of the toolset a tool belongs to."""
    match tool.source:
        case ExtensionToolSource(id=extension_id):
            return f"ext_{extension_id}"
        case McpToolSource(label=label):
            return f"mcp_{label}"
        case BuiltinToolSource():
            return BUILT_IN_GROUP
        case VirtualGroupSource():
            return VIRTUAL_GROUP


def possible_prefix_for(source: ToolSource) -> str | None:
    """Derive a short name disambiguator from a tool source.

    ``publisher.my-extension`` becomes ``my_extensi_`` and the MCP server
    label ``GitHub`` becomes ``GitHub_``.
    """
    match source:
        case ExtensionToolSource(id=extension_id):
            parts = extension_id.split(".")
            raw = parts[1] if len(parts) > 1 and parts[1] else extension_id
        case McpToolSource(label=label):
            raw = label
        case BuiltinToolSource() | VirtualGroupSource():
            return None

    return re.sub(r"[^a-zA-Z0-9]", "_", raw)[:POSSIBLE_PREFIX_MAX_LENGTH] + "_"


def _expanded_size(group: VirtualTool) -> int:
    """Visible item count contributed by ``group`` once it is expanded."""
    size = 0
    for item in group.contents:
        match item:
            case VirtualTool():
                size += item.visible_count()
            case ToolInfo():
                size += 1
    return size


class VirtualToolGrouper:
    """Builds and maintains the virtual tool tree for a session.

    Attributes:
        config: Grouping limits and feature flags.
        oracle: Categorization oracle used to name and group toolsets.
        cache: Categorization cache, flushed once per request.
        embeddings_computer: Embedding service for query-driven expansion.
        tool_embeddings: Ranker of available tools against the query.
    """

    def __init__(
        self,
        oracle: CategorizationOracle,
        config: VirtualToolsConfig | None = None,
        cache: ToolGroupingCache | None = None,
        embeddings_computer: EmbeddingsComputer | None = None,
        tool_embeddings: ToolEmbeddingsComputer | None = None,
        observer: GroupingObserver | None = None,
        app_version: str | None = None,
    ) -> None:
        """Create a grouper.

        Args:
            oracle: Categorization oracle.
            config: Grouping configuration. Defaults are used if omitted.
            cache: Categorization cache. An in-memory cache is used if omitted.
            embeddings_computer: Embedding service. Required for query-driven
                expansion.
            tool_embeddings: Tool ranker. Built from ``embeddings_computer``
                and the bundled snapshot if omitted.
            observer: Callback receiving one record per categorized toolset.
            app_version: Host application version, used to check the
                precomputed embedding snapshot.
        """
        self.config = config or VirtualToolsConfig()
        self.oracle = oracle
        self.cache = cache or InMemoryToolGroupingCache()
        self.embeddings_computer = embeddings_computer
        self.observer = observer

        if tool_embeddings is None and embeddings_computer is not None:
            tool_embeddings = ToolEmbeddingsComputer(
                PrecomputedToolEmbeddingsCache(
                    embedding_type=self.config.embedding_type,
                    app_version=app_version,
                ),
                embeddings_computer,
                self.config.embedding_type,
            )
        self.tool_embeddings = tool_embeddings

        logger.debug(
            f"VirtualToolGrouper created: hard_limit={self.config.hard_tool_limit}, "
            f"embedding_ranking={self.config.embedding_ranking_enabled}"
        )

    async def add_groups(
        self,
        query: str,
        root: VirtualTool,
        tools: Sequence[ToolInfo],
        token: CancellationToken = NONE_TOKEN,
    ) -> None:
        """Regroup ``tools`` under ``root``.

        The new tree is built separately from ``root``, which also serves as
        the previous tree, and published with a single assignment to
        ``root.contents``. If the oracle surfaces a cancellation the error
        propagates and ``root`` is left untouched.
        """
        rebuilt = await self.build_tree(query, root, tools, token)
        root.contents = rebuilt.contents

    async def build_tree(
        self,
        query: str,
        previous: VirtualTool | None,
        tools: Sequence[ToolInfo],
        token: CancellationToken = NONE_TOKEN,
    ) -> VirtualTool:
        """Build a new virtual tool tree for ``tools``.

        Args:
            query: Current user query, used for query-driven expansion.
            previous: Tree from the previous request, or None. Never mutated.
            tools: Tool inventory for this request.
            token: Cancellation token.

        Returns:
            A new, always-expanded root node.

        Raises:
            CancellationError: If the oracle surfaced a cancellation.
        """
        root = VirtualTool.root()
        if len(tools) < self.config.start_grouping_after_tool_count:
            root.contents = list(tools)
            return root

        by_toolset: dict[str, list[ToolInfo]] = {}
        for tool in tools:
            by_toolset.setdefault(toolset_key(tool), []).append(tool)

        previous_groups: dict[str, VirtualTool] = {}
        previous_categorizations: dict[str, list[SummarizedToolCategory]] = {}
        if previous is not None:
            for node in previous.all():
                if isinstance(node, VirtualTool) and node is not previous:
                    previous_groups[node.name] = node
                    if node.metadata.toolset_key:
                        previous_categorizations[node.metadata.toolset_key] = (
                            node.metadata.groups
                        )

        tasks = [
            asyncio.create_task(
                self._generate_groups_from_toolset(
                    key, toolset, previous_categorizations.get(key), token
                )
            )
            for key, toolset in by_toolset.items()
        ]
        try:
            grouped = await asyncio.gather(*tasks)
        except BaseException:
            # Sibling toolsets must settle before the cache is flushed.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            self.cache.flush()

        root.contents = self.deduplicate_groups(
            [item for items in grouped for item in items]
        )

        for node in root.all():
            if isinstance(node, VirtualTool) and node is not root:
                prev = previous_groups.get(node.name)
                if prev is not None:
                    node.is_expanded = prev.is_expanded
                    node.metadata.pre_expanded = prev.metadata.pre_expanded
                    node.last_used_on_turn = prev.last_used_on_turn

        self._collapse_to_fit(root)

        if self.config.embedding_ranking_enabled:
            if token.is_cancellation_requested:
                logger.debug("Skipping query-driven expansion: request cancelled")
            else:
                predicted = await self._get_predicted_tools(query, tools, token)
                self._expand_groups_with_predicted_tools(root, predicted)

        self._re_expand_tools_to_hit_budget(root)

        logger.info(
            f"Grouped {len(tools)} tools into {len(root.contents)} top-level items, "
            f"{root.visible_count()} visible"
        )
        return root

    @staticmethod
    def deduplicate_groups(grouped: Sequence[ToolItem]) -> list[ToolItem]:
        """Resolve name collisions across toolsets.

        When a name repeats, the group that can be renamed with its
        ``possible_prefix`` is renamed (the one already kept is preferred).
        A repeated name with no renameable group keeps the first item.

        Args:
            grouped: Items from all toolsets, in order.

        Returns:
            Items with unique names. Input items are never mutated.
        """
        seen: dict[str, ToolItem] = {}

        for item in grouped:
            saw = seen.get(item.name)
            if saw is None:
                seen[item.name] = item
                continue

            if isinstance(saw, VirtualTool) and saw.metadata.possible_prefix:
                del seen[saw.name]
                replacement = saw.clone_with_prefix(saw.metadata.possible_prefix)
                seen[replacement.name] = replacement
                seen[item.name] = item
            elif isinstance(item, VirtualTool) and item.metadata.possible_prefix:
                renamed = item.clone_with_prefix(item.metadata.possible_prefix)
                seen[renamed.name] = renamed
            else:
                logger.warning(f"Dropping duplicate tool name: {item.name}")

        return list(seen.values())

    async def _generate_groups_from_toolset(
        self,
        key: str,
        tools: list[ToolInfo],
        previous: list[SummarizedToolCategory] | None,
        token: CancellationToken,
    ) -> list[ToolItem]:
        """Categorize the tools of a single source."""
        if key in (BUILT_IN_GROUP, VIRTUAL_GROUP):
            return list(tools)
        if len(tools) <= self.config.min_toolset_size_to_group:
            return list(tools)

        names = {t.name for t in tools}
        if previous:
            previous = [p.restricted_to(names) for p in previous]
            previous = [p for p in previous if p.tools]

        started = time.perf_counter()
        attempts = 0
        categories: CategorizationResult = None
        while categories is None and attempts < self.config.max_categorization_retries:
            attempts += 1
            try:
                categories = await self.cache.get_or_insert(
                    tools, lambda: self._categorize(tools, previous, token)
                )
            except CancellationError:
                raise
            except Exception as e:
                logger.warning(
                    f"Failed to categorize tools for {key} (attempt {attempts}): {e}"
                )

        sentinel = category_key(self.config.uncategorized_tools_group_name)
        uncategorized: list[ToolInfo] = []
        groups: list[SummarizedToolCategory] = []
        if categories is None:
            uncategorized = list(tools)
        else:
            for category in categories:
                if category_key(category.name) == sentinel:
                    uncategorized.extend(t for t in category.tools if t.name in names)
                else:
                    restricted = category.restricted_to(names)
                    if restricted.tools:
                        groups.append(restricted)

            placed = {t.name for c in groups for t in c.tools}
            placed.update(t.name for t in uncategorized)
            uncategorized.extend(t for t in tools if t.name not in placed)

        self._emit_record(
            ToolsetGroupingRecord(
                group_key=key,
                tools_before=len(tools),
                tools_after=len(groups),
                retries=attempts,
                uncategorized=len(uncategorized),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        )

        possible_prefix = possible_prefix_for(tools[0].source)
        virtual_tools: list[ToolItem] = [
            VirtualTool(
                VIRTUAL_TOOL_NAME_PREFIX + group.name,
                SUMMARY_PREFIX + group.summary + SUMMARY_SUFFIX,
                0,
                VirtualToolMetadata(
                    toolset_key=key,
                    groups=groups,
                    possible_prefix=possible_prefix,
                ),
                list(group.tools),
            )
            for group in groups
        ]
        return virtual_tools + uncategorized

    async def _categorize(
        self,
        tools: list[ToolInfo],
        previous: list[SummarizedToolCategory] | None,
        token: CancellationToken,
    ) -> CategorizationResult:
        if len(tools) <= self.config.group_within_toolset:
            summary = await self.oracle.summarize_group(tools, token)
            return [summary] if summary else None

        if previous:
            return await self.oracle.divide_into_existing_groups(previous, tools, token)
        return await self.oracle.divide_into_groups(tools, token)

    def _emit_record(self, record: ToolsetGroupingRecord) -> None:
        logger.debug(
            f"Categorized {record.group_key}: {record.tools_before} tools -> "
            f"{record.tools_after} groups, {record.uncategorized} uncategorized, "
            f"{record.retries} attempts, {record.duration_ms:.0f}ms"
        )
        if self.observer is None:
            return
        try:
            self.observer(record)
        except Exception as e:
            logger.warning(f"Grouping observer failed: {e}")

    async def _get_predicted_tools(
        self, query: str, tools: Sequence[ToolInfo], token: CancellationToken
    ) -> list[ToolInfo]:
        """Return the non-builtin tools most similar to the query, best first."""
        if self.embeddings_computer is None or self.tool_embeddings is None:
            logger.debug("Query-driven expansion enabled without an embedding service")
            return []

        try:
            query_embeddings = await self.embeddings_computer.compute_embeddings(
                self.config.embedding_type, [query], token
            )
        except CancellationError:
            return []
        except Exception as e:
            logger.warning(f"Failed to compute query embedding: {e}")
            return []

        if not query_embeddings:
            return []

        available = [
            t.name
            for t in tools
            if not isinstance(t.source, BuiltinToolSource | VirtualGroupSource)
        ]
        computer = self.tool_embeddings
        ranked = await computer.retrieve_similar_embeddings_for_available_tools(
            query_embeddings[0], available, self.config.predicted_tool_count, token
        )

        by_name = {t.name: t for t in tools}
        return [by_name[name] for name in ranked if name in by_name]

    def _expand_groups_with_predicted_tools(
        self, root: VirtualTool, predicted: list[ToolInfo]
    ) -> None:
        """Expand groups holding predicted tools, best prediction first.

        Stops at the first group whose expansion would exceed the hard limit.
        """
        if not predicted:
            return

        priority: dict[str, int] = {}
        for index, tool in enumerate(predicted):
            priority.setdefault(tool.name, index)

        candidates: list[tuple[int, VirtualTool]] = []
        for item in root.contents:
            if not isinstance(item, VirtualTool) or item.is_expanded:
                continue
            ranks = [priority[c.name] for c in item.contents if c.name in priority]
            if ranks:
                candidates.append((min(ranks), item))
        candidates.sort(key=lambda c: c[0])

        tool_count = root.visible_count()
        for _, vtool in candidates:
            next_count = tool_count - 1 + _expanded_size(vtool)
            if next_count > self.config.hard_tool_limit:
                break

            vtool.is_expanded = True
            vtool.metadata.pre_expanded = True
            tool_count = next_count
            logger.debug(f"Expanded {vtool.name} for query relevance")

    def _re_expand_tools_to_hit_budget(self, root: VirtualTool) -> None:
        """Eagerly expand the smallest groups to reduce indirection."""
        tool_count = root.visible_count()
        if tool_count > self.config.expand_until_count:
            return

        expandable = sorted(
            (
                item
                for item in root.contents
                if isinstance(item, VirtualTool) and not item.is_expanded
            ),
            key=lambda v: len(v.contents),
        )

        for vtool in expandable:
            next_count = tool_count - 1 + _expanded_size(vtool)
            if next_count > self.config.hard_tool_limit:
                break

            vtool.is_expanded = True
            vtool.metadata.pre_expanded = True
            tool_count = next_count

            if tool_count > self.config.expand_until_count:
                break

    def _collapse_to_fit(self, root: VirtualTool) -> None:
        """Collapse restored groups until the tree fits under the hard limit.

        Groups the engine expanded on its own go first, then the least
        recently used ones.
        """
        tool_count = root.visible_count()
        if tool_count <= self.config.hard_tool_limit:
            return

        expanded = sorted(
            (
                item
                for item in root.contents
                if isinstance(item, VirtualTool) and item.is_expanded
            ),
            key=lambda v: (not v.metadata.pre_expanded, v.last_used_on_turn),
        )
        for vtool in expanded:
            if tool_count <= self.config.hard_tool_limit:
                break
            tool_count -= _expanded_size(vtool) - 1
            vtool.is_expanded = False
            vtool.metadata.pre_expanded = False
            logger.debug(f"Collapsed {vtool.name} to stay under the tool limit")
