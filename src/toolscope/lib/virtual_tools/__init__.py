"""Virtual tool grouping.

This package keeps the number of tools presented to a language model under a
hard limit by collapsing related tools into named, expandable groups
("virtual tools") and re-expanding the groups most relevant to each query.

Key components:
- VirtualTool: Group node of the virtual tool tree
- VirtualToolGrouper: Builds and maintains the tree across turns
- ToolEmbeddingsComputer: Ranks available tools against a query embedding
- ChatCategorizationOracle: Categorizes toolsets with a chat model
- VirtualToolsConfig: Limits and feature flags

Example usage:
    from toolscope.lib.virtual_tools import (
        ChatCategorizationOracle,
        VirtualTool,
        VirtualToolGrouper,
    )

    grouper = VirtualToolGrouper(ChatCategorizationOracle(chat_service))
    root = VirtualTool.root()

    await grouper.add_groups("Open a pull request", root, tools)
    visible = [item for item in root.tools()]
"""

from toolscope.lib.virtual_tools.cache import (
    InMemoryToolGroupingCache,
    ToolGroupingCache,
)
from toolscope.lib.virtual_tools.embeddings import (
    EmbeddingsComputer,
    PrecomputedToolEmbeddingsCache,
    SemanticKernelEmbeddingsComputer,
    ToolEmbeddingsComputer,
)
from toolscope.lib.virtual_tools.grouper import VirtualToolGrouper
from toolscope.lib.virtual_tools.models import (
    SummarizedToolCategory,
    ToolsetGroupingRecord,
    VirtualToolMetadata,
    VirtualToolsConfig,
)
from toolscope.lib.virtual_tools.ranking import RankedEmbedding, rank_embeddings
from toolscope.lib.virtual_tools.summarizer import (
    CategorizationOracle,
    ChatCategorizationOracle,
)
from toolscope.lib.virtual_tools.tree import VirtualTool

__all__ = [
    "CategorizationOracle",
    "ChatCategorizationOracle",
    "EmbeddingsComputer",
    "InMemoryToolGroupingCache",
    "PrecomputedToolEmbeddingsCache",
    "RankedEmbedding",
    "SemanticKernelEmbeddingsComputer",
    "SummarizedToolCategory",
    "ToolEmbeddingsComputer",
    "ToolGroupingCache",
    "ToolsetGroupingRecord",
    "VirtualTool",
    "VirtualToolGrouper",
    "VirtualToolMetadata",
    "VirtualToolsConfig",
    "rank_embeddings",
]
