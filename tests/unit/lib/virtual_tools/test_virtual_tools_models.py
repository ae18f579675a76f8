"""Tests for virtual tool data models."""

import pytest
from pydantic import ValidationError

from toolscope.config.defaults import (
    EXPAND_UNTIL_COUNT,
    GROUP_WITHIN_TOOLSET,
    HARD_TOOL_LIMIT,
    MIN_TOOLSET_SIZE_TO_GROUP,
    START_GROUPING_AFTER_TOOL_COUNT,
)
from toolscope.lib.virtual_tools.models import (
    SummarizedToolCategory,
    ToolsetGroupingRecord,
    VirtualToolMetadata,
    VirtualToolsConfig,
)
from toolscope.models.tool import ToolInfo


class TestVirtualToolsConfig:
    """Tests for VirtualToolsConfig."""

    def test_default_values(self) -> None:
        """Test defaults derive from the hard tool limit."""
        config = VirtualToolsConfig()

        assert config.hard_tool_limit == HARD_TOOL_LIMIT == 128
        assert config.start_grouping_after_tool_count == START_GROUPING_AFTER_TOOL_COUNT
        assert config.start_grouping_after_tool_count == 64
        assert config.expand_until_count == EXPAND_UNTIL_COUNT == 64
        assert config.group_within_toolset == GROUP_WITHIN_TOOLSET == 16
        assert config.min_toolset_size_to_group == MIN_TOOLSET_SIZE_TO_GROUP == 2
        assert config.max_categorization_retries == 3
        assert config.uncategorized_tools_group_name == "uncategorized"
        assert config.embedding_ranking_enabled is False
        assert config.predicted_tool_count == 10

    def test_expand_until_must_fit_hard_limit(self) -> None:
        """Test expand_until_count may not exceed hard_tool_limit."""
        with pytest.raises(ValidationError, match="must not exceed"):
            VirtualToolsConfig(hard_tool_limit=50, expand_until_count=60)

    def test_equal_limits_allowed(self) -> None:
        """Test the target may equal the hard limit."""
        config = VirtualToolsConfig(hard_tool_limit=50, expand_until_count=50)

        assert config.expand_until_count == 50

    def test_blank_uncategorized_name_rejected(self) -> None:
        """Test the sentinel name must not be blank."""
        with pytest.raises(ValidationError):
            VirtualToolsConfig(uncategorized_tools_group_name="  ")

    def test_retries_must_be_positive(self) -> None:
        """Test at least one categorization attempt is required."""
        with pytest.raises(ValidationError):
            VirtualToolsConfig(max_categorization_retries=0)

    def test_extra_fields_forbidden(self) -> None:
        """Test unknown settings are rejected."""
        with pytest.raises(ValidationError):
            VirtualToolsConfig(max_tools=5)  # type: ignore[call-arg]


class TestSummarizedToolCategory:
    """Tests for SummarizedToolCategory."""

    def test_restricted_to(self) -> None:
        """Test restricting keeps only the named tools in order."""
        tools = [ToolInfo(name=n) for n in ("a", "b", "c")]
        category = SummarizedToolCategory(name="x", summary="s", tools=tools)

        restricted = category.restricted_to({"c", "a", "z"})

        assert [t.name for t in restricted.tools] == ["a", "c"]
        assert restricted.name == "x"
        assert restricted.summary == "s"
        assert len(category.tools) == 3


class TestVirtualToolMetadata:
    """Tests for VirtualToolMetadata."""

    def test_defaults(self) -> None:
        """Test metadata starts empty."""
        metadata = VirtualToolMetadata()

        assert metadata.toolset_key is None
        assert metadata.groups == []
        assert metadata.possible_prefix is None
        assert metadata.pre_expanded is False


class TestToolsetGroupingRecord:
    """Tests for ToolsetGroupingRecord."""

    def test_frozen(self) -> None:
        """Test records cannot be modified after creation."""
        record = ToolsetGroupingRecord(
            group_key="mcp_github",
            tools_before=10,
            tools_after=2,
            retries=1,
            uncategorized=0,
            duration_ms=12.5,
        )

        with pytest.raises(ValidationError):
            record.retries = 2  # type: ignore[misc]
