"""Tool descriptor models.

A ``ToolInfo`` is the immutable description of one callable capability as
supplied by the upstream tool inventory. The grouping engine never mutates
it; it only partitions tools by their contributing source.

Source types:
- BuiltinToolSource: tools shipped with the host application
- ExtensionToolSource: tools contributed by an installed extension
- McpToolSource: tools exposed by an external MCP server
- VirtualGroupSource: descriptors the engine itself presents for collapsed
  virtual tool groups
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, field_validator


class BuiltinToolSource(BaseModel):
    """Source marker for tools built into the host application."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["builtin"] = Field(default="builtin", description="Source type")


class ExtensionToolSource(BaseModel):
    """Source marker for tools contributed by an extension."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["extension"] = Field(default="extension", description="Source type")
    id: str = Field(..., description="Extension identifier, e.g. 'publisher.name'")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate id is not empty."""
        if not v or not v.strip():
            raise ValueError("id must be a non-empty string")
        return v


class McpToolSource(BaseModel):
    """Source marker for tools exposed by an MCP server."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["mcp"] = Field(default="mcp", description="Source type")
    label: str = Field(..., description="Server label as configured by the user")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        """Validate label is not empty."""
        if not v or not v.strip():
            raise ValueError("label must be a non-empty string")
        return v


class VirtualGroupSource(BaseModel):
    """Source marker for the descriptor of a collapsed virtual tool group."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["virtual_group"] = Field(
        default="virtual_group", description="Source type"
    )
    toolset_key: str | None = Field(
        default=None, description="Toolset the group was built from"
    )


def _get_source_type(v: Any) -> str:
    """Extract source type from dict or model for discrimination.

    Args:
        v: Source data as dict (from YAML/JSON) or model instance

    Returns:
        Source type string for discriminator matching
    """
    if isinstance(v, dict):
        source_type: str = v.get("type", "builtin")
        return source_type
    result: str = getattr(v, "type", "builtin")
    return result


ToolSource = Annotated[
    Annotated[BuiltinToolSource, Tag("builtin")]
    | Annotated[ExtensionToolSource, Tag("extension")]
    | Annotated[McpToolSource, Tag("mcp")]
    | Annotated[VirtualGroupSource, Tag("virtual_group")],
    Discriminator(_get_source_type),
]


class ToolInfo(BaseModel):
    """Immutable description of a single tool.

    Attributes:
        name: Tool name, globally unique within one inventory.
        description: Model-facing description of what the tool does.
        source: Contributing source (builtin, extension, MCP server or a
            virtual tool group).
        input_schema: Optional JSON schema of the tool's input.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Tool name, unique within the inventory")
    description: str = Field(default="", description="Model-facing description")
    source: ToolSource = Field(
        default_factory=BuiltinToolSource, description="Contributing source"
    )
    input_schema: dict[str, Any] | None = Field(
        default=None, description="JSON schema of the tool input"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not empty."""
        if not v or not v.strip():
            raise ValueError("name must be a non-empty string")
        return v

    def __hash__(self) -> int:
        return hash((self.name, self.description, self.source))
