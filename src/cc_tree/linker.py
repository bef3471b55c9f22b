"""Link tool invocations to their results across message boundaries."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, NamedTuple, Optional

from .models import AssistantMessage, Message, ToolResult, ToolUse, UserMessage, tool_result_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkedContext:
    """A tool result together with the invocation that produced it.

    ``tool_name`` and ``input_content`` are None when the result references a
    tool_use id that never appeared in the stream.
    """

    tool_use_id: str
    tool_name: Optional[str]
    input_content: Optional[str]
    result_content: Any
    is_error: bool = False
    tool_input: dict = field(default_factory=dict, compare=False, hash=False)

    @property
    def result_text(self) -> str:
        return tool_result_text(self.result_content)

    @property
    def file_path(self) -> Optional[str]:
        for key in ("file_path", "path", "notebook_path"):
            value = self.tool_input.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    @property
    def is_linked(self) -> bool:
        return self.tool_name is not None


def serialize_tool_input(tool_input: Any) -> str:
    """Compact JSON for a tool input, keeping its key order."""
    return json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False)


def link(tool_use: Optional[ToolUse], tool_result: Optional[ToolResult]) -> LinkedContext:
    """Compose a tool invocation and its result for classification."""
    if tool_use is None and tool_result is None:
        raise ValueError("link() needs a tool use or a tool result")

    tool_use_id = tool_result.tool_use_id if tool_result is not None else tool_use.id
    return LinkedContext(
        tool_use_id=tool_use_id,
        tool_name=tool_use.name if tool_use is not None else None,
        input_content=serialize_tool_input(tool_use.input) if tool_use is not None else None,
        result_content=tool_result.content if tool_result is not None else None,
        is_error=tool_result.is_error if tool_result is not None else False,
        tool_input=dict(tool_use.input) if tool_use is not None else {},
    )


class ToolIndex(NamedTuple):
    """Tool uses and tool results keyed by tool_use id.

    Unpacks as ``(tool_uses, tool_results)``.
    """

    tool_uses: dict[str, ToolUse]
    tool_results: dict[str, ToolResult]

    def tool_for(self, tool_use_id: str) -> Optional[ToolUse]:
        return self.tool_uses.get(tool_use_id)

    def result_for(self, tool_use_id: str) -> Optional[ToolResult]:
        return self.tool_results.get(tool_use_id)

    def link_for(self, tool_use_id: str) -> Optional[LinkedContext]:
        tool_use = self.tool_uses.get(tool_use_id)
        tool_result = self.tool_results.get(tool_use_id)
        if tool_use is None and tool_result is None:
            return None
        return link(tool_use, tool_result)

    def orphan_results(self) -> list[str]:
        """Ids of results whose tool_use never appeared (link mismatches)."""
        return [i for i in self.tool_results if i not in self.tool_uses]

    def pending_tool_uses(self) -> list[str]:
        """Ids of tool uses that have no result yet."""
        return [i for i in self.tool_uses if i not in self.tool_results]


def build_index(messages: Iterable[Message]) -> ToolIndex:
    """Index every tool_use and tool_result block in a single forward pass.

    Duplicate ids keep the last occurrence and are logged as warnings, since
    they indicate a malformed transcript.
    """
    tool_uses: dict[str, ToolUse] = {}
    tool_results: dict[str, ToolResult] = {}

    for message in messages:
        if isinstance(message, AssistantMessage):
            for tool_use in message.tool_uses:
                if not tool_use.id:
                    continue
                if tool_use.id in tool_uses:
                    logger.warning("Duplicate tool_use id %s; keeping the last one", tool_use.id)
                tool_uses[tool_use.id] = tool_use
        elif isinstance(message, UserMessage):
            for tool_result in message.tool_results:
                if not tool_result.tool_use_id:
                    continue
                if tool_result.tool_use_id in tool_results:
                    logger.warning(
                        "Duplicate tool_result for %s; keeping the last one",
                        tool_result.tool_use_id,
                    )
                tool_results[tool_result.tool_use_id] = tool_result

    return ToolIndex(tool_uses=tool_uses, tool_results=tool_results)
