"""Data models for virtual tool grouping.

This module defines the Pydantic models shared by the grouper, the
categorization oracle and the embedding subsystem.

Key models:
- VirtualToolsConfig: Limits and feature flags for grouping and expansion
- SummarizedToolCategory: One named category produced by the oracle
- VirtualToolMetadata: Bookkeeping attached to each virtual tool node
- ToolsetGroupingRecord: Observability record emitted per categorized toolset
"""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from toolscope.config.defaults import (
    DEFAULT_EMBEDDING_TYPE,
    EXPAND_UNTIL_COUNT,
    GROUP_WITHIN_TOOLSET,
    HARD_TOOL_LIMIT,
    MAX_CATEGORIZATION_RETRIES,
    MIN_TOOLSET_SIZE_TO_GROUP,
    PREDICTED_TOOL_COUNT,
    START_GROUPING_AFTER_TOOL_COUNT,
    UNCATEGORIZED_TOOLS_GROUP_NAME,
)
from toolscope.models.tool import ToolInfo


class VirtualToolsConfig(BaseModel):
    """Configuration for virtual tool grouping.

    Attributes:
        start_grouping_after_tool_count: Inventories smaller than this are
            passed through without grouping.
        min_toolset_size_to_group: Toolsets at or below this size are never
            categorized.
        group_within_toolset: Toolsets at or below this size become a single
            group; larger ones are divided into several.
        max_categorization_retries: Attempts per toolset before failing open.
        uncategorized_tools_group_name: Category name the oracle uses for
            tools it could not place.
        expand_until_count: Budget expansion target for the visible count.
        hard_tool_limit: Ceiling on the visible count.
        embedding_ranking_enabled: Enable query-driven expansion.
        predicted_tool_count: Ranked tools considered by query-driven expansion.
        embedding_type: Embedding model identifier for tool/query vectors.
    """

    model_config = ConfigDict(extra="forbid")

    start_grouping_after_tool_count: int = Field(
        default=START_GROUPING_AFTER_TOOL_COUNT, ge=0
    )
    min_toolset_size_to_group: int = Field(default=MIN_TOOLSET_SIZE_TO_GROUP, ge=0)
    group_within_toolset: int = Field(default=GROUP_WITHIN_TOOLSET, ge=1)
    max_categorization_retries: int = Field(
        default=MAX_CATEGORIZATION_RETRIES, ge=1, le=10
    )
    uncategorized_tools_group_name: str = Field(default=UNCATEGORIZED_TOOLS_GROUP_NAME)
    expand_until_count: int = Field(default=EXPAND_UNTIL_COUNT, ge=0)
    hard_tool_limit: int = Field(default=HARD_TOOL_LIMIT, ge=1)
    embedding_ranking_enabled: bool = Field(default=False)
    predicted_tool_count: int = Field(default=PREDICTED_TOOL_COUNT, ge=1, le=100)
    embedding_type: str = Field(default=DEFAULT_EMBEDDING_TYPE)

    @field_validator("uncategorized_tools_group_name", "embedding_type")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate string settings are not empty."""
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @model_validator(mode="after")
    def validate_limits(self) -> Self:
        """Validate the expansion target fits under the hard limit."""
        if self.expand_until_count > self.hard_tool_limit:
            raise ValueError(
                f"expand_until_count ({self.expand_until_count}) must not exceed "
                f"hard_tool_limit ({self.hard_tool_limit})"
            )
        return self


class SummarizedToolCategory(BaseModel):
    """A named group of tools as produced by the categorization oracle."""

    name: str = Field(..., description="Category name, without any prefix")
    summary: str = Field(default="", description="Summary of the category")
    tools: list[ToolInfo] = Field(default_factory=list)

    def restricted_to(self, names: set[str]) -> "SummarizedToolCategory":
        """Return a copy that only keeps tools whose name is in ``names``."""
        return SummarizedToolCategory(
            name=self.name,
            summary=self.summary,
            tools=[t for t in self.tools if t.name in names],
        )


class VirtualToolMetadata(BaseModel):
    """Bookkeeping attached to a virtual tool.

    Attributes:
        toolset_key: Key of the toolset the node was generated from.
        groups: The full categorization that produced this node; reused on the
            next turn to keep grouping stable.
        possible_prefix: Disambiguator applied if the node name collides.
        pre_expanded: True when the engine (not the model) expanded the node.
    """

    toolset_key: str | None = None
    groups: list[SummarizedToolCategory] = Field(default_factory=list)
    possible_prefix: str | None = None
    pre_expanded: bool = False


class ToolsetGroupingRecord(BaseModel):
    """Per-toolset observability record."""

    model_config = ConfigDict(frozen=True)

    group_key: str
    tools_before: int
    tools_after: int
    retries: int
    uncategorized: int
    duration_ms: float
