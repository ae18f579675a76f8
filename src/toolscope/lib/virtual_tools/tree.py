"""Virtual tool tree model.

A ``VirtualTool`` is a collapsible group standing in for a set of related
tools. Its ``contents`` are a tagged union of child groups and leaf
``ToolInfo`` objects, so the tree can nest arbitrarily deep.

A collapsed group is presented to the model as a single tool (see
``describe``); calling it expands the group so its children become visible
individually. The root of a tree is always expanded and never presented.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

from toolscope.lib.virtual_tools.models import VirtualToolMetadata
from toolscope.models.tool import ToolInfo, VirtualGroupSource

VIRTUAL_TOOL_NAME_PREFIX = "activate_"
VIRTUAL_TOOL_ROOT_NAME = "root"


@dataclass
class VirtualToolLookup:
    """Result of ``VirtualTool.find``.

    Attributes:
        tool: The matching group or leaf.
        path: Groups between the search root (exclusive) and ``tool``
            (exclusive), outermost first.
    """

    tool: "VirtualTool | ToolInfo"
    path: list["VirtualTool"] = field(default_factory=list)


class VirtualTool:
    """A group node in the virtual tool tree."""

    def __init__(
        self,
        name: str,
        description: str,
        last_used_on_turn: int = 0,
        metadata: VirtualToolMetadata | None = None,
        contents: list["VirtualTool | ToolInfo"] | None = None,
        is_expanded: bool = False,
    ) -> None:
        self.name = name
        self.description = description
        self.last_used_on_turn = last_used_on_turn
        self.metadata = metadata or VirtualToolMetadata()
        self.contents: list[VirtualTool | ToolInfo] = list(contents or [])
        self.is_expanded = is_expanded

    @classmethod
    def root(
        cls, contents: list["VirtualTool | ToolInfo"] | None = None
    ) -> "VirtualTool":
        """Create an always-expanded root container."""
        return cls(VIRTUAL_TOOL_ROOT_NAME, "", contents=contents, is_expanded=True)

    def all(self) -> Iterator["VirtualTool | ToolInfo"]:
        """Iterate depth-first over this node and everything beneath it."""
        yield self
        for item in self.contents:
            match item:
                case VirtualTool():
                    yield from item.all()
                case ToolInfo():
                    yield item

    def tools(self) -> Iterator["VirtualTool | ToolInfo"]:
        """Iterate over the items currently visible to the model.

        Leaves inside expanded groups are yielded individually; a collapsed
        group is yielded as one opaque item.
        """
        if not self.is_expanded:
            yield self
            return

        for item in self.contents:
            match item:
                case VirtualTool():
                    yield from item.tools()
                case ToolInfo():
                    yield item

    def visible_count(self) -> int:
        return sum(1 for _ in self.tools())

    def clone_with_prefix(self, prefix: str) -> "VirtualTool":
        """Return a renamed copy of this node.

        The prefix is inserted after ``VIRTUAL_TOOL_NAME_PREFIX``, so
        ``activate_search`` cloned with ``github_`` becomes
        ``activate_github_search``. The original node is left untouched.
        """
        base = self.name.removeprefix(VIRTUAL_TOOL_NAME_PREFIX)
        return VirtualTool(
            VIRTUAL_TOOL_NAME_PREFIX + prefix + base,
            self.description,
            self.last_used_on_turn,
            self.metadata.model_copy(),
            list(self.contents),
            self.is_expanded,
        )

    def find(self, name: str) -> VirtualToolLookup | None:
        """Locate a group or leaf by name beneath this node."""
        for item in self.contents:
            if item.name == name:
                return VirtualToolLookup(tool=item)
            if isinstance(item, VirtualTool):
                found = item.find(name)
                if found:
                    found.path.insert(0, item)
                    return found
        return None

    def record_tool_use(self, name: str, turn: int) -> bool:
        """Mark every group on the path to ``name`` as used on ``turn``.

        Returns:
            True if the tool was found beneath this node.
        """
        found = self.find(name)
        if found is None:
            return False

        for group in found.path:
            group.last_used_on_turn = turn
        if isinstance(found.tool, VirtualTool):
            found.tool.last_used_on_turn = turn
        return True

    def describe(self) -> ToolInfo:
        """Return the tool descriptor the model sees for this collapsed group."""
        return ToolInfo(
            name=self.name,
            description=self.description,
            source=VirtualGroupSource(toolset_key=self.metadata.toolset_key),
            input_schema={"type": "object", "properties": {}},
        )

    def __repr__(self) -> str:
        state = "expanded" if self.is_expanded else "collapsed"
        return f"VirtualTool({self.name!r}, {len(self.contents)} items, {state})"


ToolItem = VirtualTool | ToolInfo
