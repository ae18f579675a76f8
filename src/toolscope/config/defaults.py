"""Default configuration values for toolscope."""

# Maximum number of tools/groups presented to the model at once.
HARD_TOOL_LIMIT = 128

# Tool sets smaller than this are presented as-is without grouping.
START_GROUPING_AFTER_TOOL_COUNT = HARD_TOOL_LIMIT // 2

# Budget expansion keeps expanding small groups until this many items are visible.
EXPAND_UNTIL_COUNT = START_GROUPING_AFTER_TOOL_COUNT

# Toolsets with at most this many tools are never sent for categorization.
MIN_TOOLSET_SIZE_TO_GROUP = 2

# Toolsets with at most this many tools are summarized into a single group.
GROUP_WITHIN_TOOLSET = HARD_TOOL_LIMIT // 8

MAX_CATEGORIZATION_RETRIES = 3

UNCATEGORIZED_TOOLS_GROUP_NAME = "uncategorized"

# Number of embedding-ranked tools used to pick groups for query-driven expansion.
PREDICTED_TOOL_COUNT = 10

DEFAULT_EMBEDDING_TYPE = "text-embedding-3-small-512"

VIRTUAL_TOOLS_DEFAULTS: dict[str, int | bool | str] = {
    "start_grouping_after_tool_count": START_GROUPING_AFTER_TOOL_COUNT,
    "min_toolset_size_to_group": MIN_TOOLSET_SIZE_TO_GROUP,
    "group_within_toolset": GROUP_WITHIN_TOOLSET,
    "max_categorization_retries": MAX_CATEGORIZATION_RETRIES,
    "uncategorized_tools_group_name": UNCATEGORIZED_TOOLS_GROUP_NAME,
    "expand_until_count": EXPAND_UNTIL_COUNT,
    "hard_tool_limit": HARD_TOOL_LIMIT,
    "embedding_ranking_enabled": False,
    "predicted_tool_count": PREDICTED_TOOL_COUNT,
    "embedding_type": DEFAULT_EMBEDDING_TYPE,
}
