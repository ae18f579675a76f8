"""Categorization oracle for virtual tool grouping.

The oracle names and groups a list of tools from one source. The grouper
only depends on the ``CategorizationOracle`` protocol; this module also
provides ``ChatCategorizationOracle``, which asks a Semantic Kernel chat
completion service for a JSON categorization.

Three operations are supported:
- summarize_group: describe a small toolset as a single category
- divide_into_groups: split a large toolset into several categories
- divide_into_existing_groups: split a toolset while reusing the categories
  of a previous turn so that grouping stays stable across turns
"""

import json
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import tiktoken

from toolscope.config.defaults import UNCATEGORIZED_TOOLS_GROUP_NAME
from toolscope.lib.cancellation import NONE_TOKEN, CancellationToken, run_cancellable
from toolscope.lib.errors import CategorizationError
from toolscope.lib.logging_config import get_logger
from toolscope.lib.virtual_tools.models import SummarizedToolCategory
from toolscope.models.tool import ToolInfo

if TYPE_CHECKING:
    from semantic_kernel.connectors.ai.chat_completion_client_base import (
        ChatCompletionClientBase,
    )
    from semantic_kernel.connectors.ai.prompt_execution_settings import (
        PromptExecutionSettings,
    )

logger = get_logger(__name__)

MAX_CATEGORY_NAME_LENGTH = 40

SUMMARIZE_PROMPT_TEMPLATE = """You are organizing the tools of an AI assistant.
All of the following tools come from the same source:

{tools}

Give this set of tools a short snake_case category name and a one or two \
sentence summary of what they can do together. Answer only with JSON in the \
form {{"name": "...", "summary": "..."}}."""

DIVIDE_PROMPT_TEMPLATE = """You are organizing the tools of an AI assistant.
All of the following tools come from the same source:

{tools}

Divide these tools into a small number of categories of closely related \
tools. Give each category a short snake_case name and a one or two sentence \
summary. Every tool must appear in exactly one category. Put tools that do \
not fit any category in a category named "{uncategorized}". Answer only with \
a JSON array of objects in the form \
{{"name": "...", "summary": "...", "tools": ["tool_name", ...]}}."""

DIVIDE_EXISTING_PROMPT_TEMPLATE = """You are organizing the tools of an AI assistant.
The tools were previously organized into these categories:

{categories}

The current tools from the same source are:

{tools}

Assign every current tool to a category. Keep the existing categories and \
their names wherever they still fit, and only create a new category when a \
tool does not fit any existing one. Put tools that do not fit anywhere in a \
category named "{uncategorized}". Answer only with a JSON array of objects in \
the form {{"name": "...", "summary": "...", "tools": ["tool_name", ...]}}."""

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$")


@runtime_checkable
class CategorizationOracle(Protocol):
    """Semantic classifier that names and groups tool lists."""

    async def summarize_group(
        self, tools: Sequence[ToolInfo], token: CancellationToken = NONE_TOKEN
    ) -> SummarizedToolCategory | None:
        """Describe ``tools`` as a single category."""
        ...

    async def divide_into_groups(
        self, tools: Sequence[ToolInfo], token: CancellationToken = NONE_TOKEN
    ) -> list[SummarizedToolCategory] | None:
        """Split ``tools`` into named categories."""
        ...

    async def divide_into_existing_groups(
        self,
        previous: Sequence[SummarizedToolCategory],
        tools: Sequence[ToolInfo],
        token: CancellationToken = NONE_TOKEN,
    ) -> list[SummarizedToolCategory] | None:
        """Split ``tools`` into categories, preferring those in ``previous``."""
        ...


def sanitize_category_name(name: str) -> str:
    """Normalize a model-provided category name into a tool-name-safe slug."""
    slug = re.sub(r"[^a-zA-Z0-9_-]+", "_", name.strip()).strip("_").lower()
    return slug[:MAX_CATEGORY_NAME_LENGTH]


def category_key(name: str) -> str:
    """Comparison key for category names, matching what the oracle returns."""
    return sanitize_category_name(name) or name


class ChatCategorizationOracle:
    """CategorizationOracle backed by a Semantic Kernel chat completion service.

    Attributes:
        _chat_service: Semantic Kernel chat completion service.
        _execution_settings: Optional settings passed on every call.
        _max_description_tokens: Per-tool description budget in prompts.
    """

    DEFAULT_MAX_DESCRIPTION_TOKENS = 200

    def __init__(
        self,
        chat_service: "ChatCompletionClientBase",
        execution_settings: "PromptExecutionSettings | None" = None,
        max_description_tokens: int = DEFAULT_MAX_DESCRIPTION_TOKENS,
        uncategorized_name: str = UNCATEGORIZED_TOOLS_GROUP_NAME,
    ) -> None:
        self._chat_service = chat_service
        self._execution_settings = execution_settings
        self._max_description_tokens = max_description_tokens
        self._uncategorized_name = uncategorized_name
        self._uncategorized_key = category_key(uncategorized_name)
        self._encoder: tiktoken.Encoding | None = None

    def _truncate_description(self, text: str) -> str:
        """Truncate a tool description to the per-tool token budget."""
        # A token is at least one character, so short texts never need encoding.
        if len(text) <= self._max_description_tokens:
            return text

        if self._encoder is None:
            self._encoder = tiktoken.get_encoding("cl100k_base")
        tokens = self._encoder.encode(text)
        if len(tokens) <= self._max_description_tokens:
            return text
        truncated: str = self._encoder.decode(tokens[: self._max_description_tokens])
        return truncated + "..."

    def _format_tools(self, tools: Sequence[ToolInfo]) -> str:
        return "\n".join(
            f"- {t.name}: {self._truncate_description(t.description)}" for t in tools
        )

    def _format_categories(self, categories: Sequence[SummarizedToolCategory]) -> str:
        lines = []
        for category in categories:
            names = ", ".join(t.name for t in category.tools)
            lines.append(f"- {category.name}: {category.summary} (tools: {names})")
        return "\n".join(lines)

    async def _call_llm(self, prompt: str, token: CancellationToken) -> str:
        """Call the chat service with the given prompt.

        Raises:
            CancellationError: If the token is cancelled before the call returns.
            Exception: If the chat service call fails.
        """
        # Import here to avoid circular imports and allow mocking
        from semantic_kernel.connectors.ai.prompt_execution_settings import (
            PromptExecutionSettings,
        )
        from semantic_kernel.contents import ChatHistory

        chat_history = ChatHistory()
        chat_history.add_user_message(prompt)

        result = await run_cancellable(
            self._chat_service.get_chat_message_contents(
                chat_history=chat_history,
                settings=self._execution_settings or PromptExecutionSettings(),
            ),
            token,
        )

        if result and len(result) > 0:
            content = result[0].content
            return str(content).strip() if content else ""
        return ""

    def _parse_json(self, raw: str) -> Any:
        text = _FENCE_PATTERN.sub("", raw.strip())
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CategorizationError(
                f"Categorization output is not valid JSON: {e}", raw_output=raw
            ) from e

    def _parse_categories(
        self, raw: str, tools: Sequence[ToolInfo]
    ) -> list[SummarizedToolCategory]:
        """Map a JSON category list back onto the known tools.

        Unknown tool names are ignored, a tool listed twice stays in the first
        category naming it, and tools the model left out are collected into
        the uncategorized category.
        """
        data = self._parse_json(raw)
        if not isinstance(data, list):
            raise CategorizationError(
                "Categorization output must be a JSON array", raw_output=raw
            )

        by_name = {t.name: t for t in tools}
        placed: set[str] = set()
        categories: dict[str, SummarizedToolCategory] = {}

        for entry in data:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                logger.debug(f"Skipping malformed category entry: {entry!r}")
                continue

            name = sanitize_category_name(entry["name"])
            if not name:
                continue
            summary = str(entry.get("summary", ""))
            category = categories.setdefault(
                name, SummarizedToolCategory(name=name, summary=summary)
            )
            for tool_name in entry.get("tools") or []:
                tool = by_name.get(tool_name)
                if tool is None or tool_name in placed:
                    continue
                category.tools.append(tool)
                placed.add(tool_name)

        result = [c for c in categories.values() if c.tools]
        leftover = [t for t in tools if t.name not in placed]
        if leftover:
            uncategorized = next(
                (c for c in result if c.name == self._uncategorized_key), None
            )
            if uncategorized is None:
                uncategorized = SummarizedToolCategory(name=self._uncategorized_key)
                result.append(uncategorized)
            uncategorized.tools.extend(leftover)

        if not any(c.name != self._uncategorized_key for c in result):
            raise CategorizationError(
                "Categorization output contained no usable categories", raw_output=raw
            )
        return result

    async def summarize_group(
        self, tools: Sequence[ToolInfo], token: CancellationToken = NONE_TOKEN
    ) -> SummarizedToolCategory | None:
        prompt = SUMMARIZE_PROMPT_TEMPLATE.format(tools=self._format_tools(tools))
        raw = await self._call_llm(prompt, token)
        data = self._parse_json(raw)
        if not isinstance(data, dict) or not data.get("name"):
            raise CategorizationError(
                "Summary output must be a JSON object with a name", raw_output=raw
            )

        name = sanitize_category_name(str(data["name"]))
        if not name:
            raise CategorizationError("Summary name is empty", raw_output=raw)
        return SummarizedToolCategory(
            name=name, summary=str(data.get("summary", "")), tools=list(tools)
        )

    async def divide_into_groups(
        self, tools: Sequence[ToolInfo], token: CancellationToken = NONE_TOKEN
    ) -> list[SummarizedToolCategory] | None:
        prompt = DIVIDE_PROMPT_TEMPLATE.format(
            tools=self._format_tools(tools), uncategorized=self._uncategorized_name
        )
        raw = await self._call_llm(prompt, token)
        return self._parse_categories(raw, tools)

    async def divide_into_existing_groups(
        self,
        previous: Sequence[SummarizedToolCategory],
        tools: Sequence[ToolInfo],
        token: CancellationToken = NONE_TOKEN,
    ) -> list[SummarizedToolCategory] | None:
        prompt = DIVIDE_EXISTING_PROMPT_TEMPLATE.format(
            categories=self._format_categories(previous),
            tools=self._format_tools(tools),
            uncategorized=self._uncategorized_name,
        )
        raw = await self._call_llm(prompt, token)
        return self._parse_categories(raw, tools)
