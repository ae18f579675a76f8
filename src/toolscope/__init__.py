"""toolscope - keep large agent tool inventories within a model's reach.

toolscope collapses hundreds of tools contributed by builtins, extensions and
MCP servers into named virtual tool groups, keeps the number of tools shown
to the model under a hard limit, and re-expands the groups most relevant to
the current query.

Main features:
- Per-source categorization through a pluggable categorization oracle
- Stable grouping across turns with expansion state carried over
- Embedding-based ranking of tools against the user query
- Budget-driven expansion of small groups
"""

from toolscope.config.loader import load_virtual_tools_config
from toolscope.lib.errors import ConfigError, ToolScopeError
from toolscope.lib.virtual_tools import (
    ToolEmbeddingsComputer,
    VirtualTool,
    VirtualToolGrouper,
    VirtualToolsConfig,
)
from toolscope.models.tool import ToolInfo

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConfigError",
    "ToolEmbeddingsComputer",
    "ToolInfo",
    "ToolScopeError",
    "VirtualTool",
    "VirtualToolGrouper",
    "VirtualToolsConfig",
    "load_virtual_tools_config",
]
