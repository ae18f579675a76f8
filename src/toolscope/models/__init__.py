"""Data models describing the tool inventory."""

from toolscope.models.tool import (
    BuiltinToolSource,
    ExtensionToolSource,
    McpToolSource,
    ToolInfo,
    ToolSource,
    VirtualGroupSource,
)

__all__ = [
    "BuiltinToolSource",
    "ExtensionToolSource",
    "McpToolSource",
    "ToolInfo",
    "ToolSource",
    "VirtualGroupSource",
]
