"""Typed message model for Claude Code JSONL transcripts."""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Slash-command markup that Claude Code writes into user messages
COMMAND_NAME_PATTERN = re.compile(r"<command-name>(.*?)</command-name>", re.DOTALL)
COMMAND_ARGS_PATTERN = re.compile(r"<command-args>(.*?)</command-args>", re.DOTALL)
COMMAND_MESSAGE_PATTERN = re.compile(
    r"<command-message>(.*?)</command-message>", re.DOTALL
)

MCP_PREFIX = "mcp__"


class MessageType(str, Enum):
    """Known top-level ``type`` values of stream-json events."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    SUMMARY = "summary"
    RESULT = "result"


@dataclass
class TextBlock:
    text: str


@dataclass
class ThinkingBlock:
    thinking: str


@dataclass
class ToolUse:
    """A tool invocation inside an assistant message."""

    id: str
    name: str
    input: dict = field(default_factory=dict)

    @property
    def is_mcp(self) -> bool:
        return self.name.startswith(MCP_PREFIX)


@dataclass
class ToolResult:
    """The output of a tool invocation, carried by a user message."""

    tool_use_id: str
    content: Any = ""
    is_error: bool = False

    @property
    def text(self) -> str:
        return tool_result_text(self.content)


@dataclass
class OtherBlock:
    """Content block of a kind this model does not interpret (image, etc.)."""

    type: str
    data: dict = field(default_factory=dict)


ContentBlock = TextBlock | ThinkingBlock | ToolUse | ToolResult | OtherBlock


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass
class McpToolName:
    server: str
    tool: str


@dataclass
class CommandInfo:
    """Slash command extracted from a user message."""

    name: Optional[str]
    args: Optional[str]
    message: Optional[str]
    raw: str


def parse_mcp_tool_name(tool_name: Optional[str]) -> Optional[McpToolName]:
    """Split ``mcp__server__tool`` into its server and tool parts.

    Returns None for names without the MCP prefix or without a tool part.
    """
    if not tool_name or not tool_name.startswith(MCP_PREFIX):
        return None
    parts = [p for p in tool_name[len(MCP_PREFIX):].split("__") if p]
    if len(parts) < 2:
        return None
    return McpToolName(server=parts[0], tool="__".join(parts[1:]))


def tool_result_text(content: Any) -> str:
    """Flatten tool result content into display text.

    Content is a string, a list of blocks (text and image), or arbitrary JSON.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                if item.get("type") == "text":
                    parts.append(str(item.get("text", "")))
                elif item.get("type") == "image":
                    parts.append("[image]")
        return "\n".join(parts)
    return json.dumps(content, ensure_ascii=False)


def parse_content_block(block: Any) -> ContentBlock:
    """Convert one raw content block into its typed form."""
    if isinstance(block, str):
        return TextBlock(text=block)
    if not isinstance(block, dict):
        return OtherBlock(type=type(block).__name__, data={"value": block})

    block_type = block.get("type")
    if block_type == "text":
        return TextBlock(text=str(block.get("text") or ""))
    if block_type == "thinking":
        return ThinkingBlock(thinking=str(block.get("thinking") or ""))
    if block_type == "tool_use":
        tool_input = block.get("input")
        return ToolUse(
            id=str(block.get("id") or ""),
            name=str(block.get("name") or "unknown"),
            input=tool_input if isinstance(tool_input, dict) else {},
        )
    if block_type == "tool_result":
        return ToolResult(
            tool_use_id=str(block.get("tool_use_id") or ""),
            content=block.get("content", ""),
            is_error=bool(block.get("is_error", False)),
        )
    return OtherBlock(type=str(block_type or "unknown"), data=block)


def _number(value: Any, cast: type) -> Any:
    """Coerce a numeric field, treating missing or malformed values as zero."""
    try:
        return cast(value or 0)
    except (TypeError, ValueError, OverflowError):
        return cast(0)


def raw_content_blocks(raw: dict) -> list:
    """Return the raw ``message.content`` as a list of blocks.

    A plain string becomes a single text block; anything else becomes empty.
    """
    message_data = raw.get("message")
    if not isinstance(message_data, dict):
        return []
    content = message_data.get("content")
    if isinstance(content, list):
        return content
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return []


@dataclass
class Message:
    """A single transcript event.

    ``raw`` holds the decoded JSON object untouched so that fields this model
    does not know about are preserved.
    """

    raw: dict

    @classmethod
    def from_json(cls, data: dict) -> "Message":
        """Build the variant matching ``data["type"]``."""
        message_cls = MESSAGE_CLASSES.get(data.get("type"), UnknownMessage)
        return message_cls(raw=data)

    @property
    def type(self) -> str:
        return self.raw.get("type", "")

    @property
    def uuid(self) -> Optional[str]:
        return self.raw.get("uuid")

    @property
    def parent_uuid(self) -> Optional[str]:
        return self.raw.get("parentUuid") or self.raw.get("parent_uuid")

    @property
    def session_id(self) -> Optional[str]:
        return self.raw.get("sessionId") or self.raw.get("session_id")

    @property
    def cwd(self) -> Optional[str]:
        return self.raw.get("cwd")

    @property
    def git_branch(self) -> Optional[str]:
        return self.raw.get("gitBranch") or self.raw.get("git_branch")

    @property
    def version(self) -> Optional[str]:
        return self.raw.get("version")

    @property
    def timestamp(self) -> Optional[str]:
        return self.raw.get("timestamp")

    @property
    def request_id(self) -> Optional[str]:
        return self.raw.get("requestId") or self.raw.get("request_id")

    @property
    def user_type(self) -> Optional[str]:
        return self.raw.get("userType") or self.raw.get("user_type")

    @property
    def parent_tool_use_id(self) -> Optional[str]:
        value = self.raw.get("parent_tool_use_id") or self.raw.get("parentToolUseId")
        return value if isinstance(value, str) else None

    @property
    def is_sidechain(self) -> bool:
        return self.raw.get("isSidechain") is True

    @property
    def role(self) -> str:
        message_data = self.raw.get("message")
        if isinstance(message_data, dict) and message_data.get("role"):
            return str(message_data["role"])
        return self.type

    @property
    def content_blocks(self) -> list[ContentBlock]:
        return [parse_content_block(b) for b in raw_content_blocks(self.raw)]

    @property
    def text_content(self) -> Optional[str]:
        texts = [b.text for b in self.content_blocks if isinstance(b, TextBlock)]
        return "\n".join(texts) if texts else None

    def get_metadata(self) -> dict:
        return {
            "type": self.type,
            "uuid": self.uuid,
            "parent_uuid": self.parent_uuid,
            "session_id": self.session_id,
            "cwd": self.cwd,
            "git_branch": self.git_branch,
            "version": self.version,
            "timestamp": self.timestamp,
        }


@dataclass
class SystemMessage(Message):
    @property
    def subtype(self) -> Optional[str]:
        return self.raw.get("subtype")

    @property
    def content(self) -> str:
        content = self.raw.get("content")
        return content if isinstance(content, str) else ""

    @property
    def level(self) -> Optional[str]:
        return self.raw.get("level")

    @property
    def tool_use_id(self) -> Optional[str]:
        return self.raw.get("toolUseID") or self.raw.get("tool_use_id")

    @property
    def model(self) -> Optional[str]:
        return self.raw.get("model")

    @property
    def tools(self) -> list[str]:
        tools = self.raw.get("tools")
        return [str(t) for t in tools] if isinstance(tools, list) else []

    @property
    def is_init(self) -> bool:
        return self.subtype == "init"


@dataclass
class UserMessage(Message):
    @property
    def tool_results(self) -> list[ToolResult]:
        return [b for b in self.content_blocks if isinstance(b, ToolResult)]

    @property
    def is_tool_result(self) -> bool:
        return bool(self.tool_results)

    @property
    def command_info(self) -> Optional[CommandInfo]:
        """Slash command details if this message invokes one."""
        text = self.text_content
        if not text:
            return None
        name = COMMAND_NAME_PATTERN.search(text)
        args = COMMAND_ARGS_PATTERN.search(text)
        message = COMMAND_MESSAGE_PATTERN.search(text)
        if not (name or args or message):
            return None
        return CommandInfo(
            name=name.group(1).strip() if name else None,
            args=args.group(1).strip() if args else None,
            message=message.group(1).strip() if message else None,
            raw=text,
        )


@dataclass
class AssistantMessage(Message):
    # Number of streamed fragments merged into this message
    fragments: int = 1

    @property
    def _message_data(self) -> dict:
        message_data = self.raw.get("message")
        return message_data if isinstance(message_data, dict) else {}

    @property
    def message_id(self) -> Optional[str]:
        return self._message_data.get("id")

    @property
    def model(self) -> Optional[str]:
        return self._message_data.get("model")

    @property
    def stop_reason(self) -> Optional[str]:
        return self._message_data.get("stop_reason")

    @property
    def usage(self) -> Optional[Usage]:
        usage = self._message_data.get("usage")
        if not isinstance(usage, dict):
            return None
        return Usage(
            input_tokens=usage.get("input_tokens") or 0,
            output_tokens=usage.get("output_tokens") or 0,
            cache_creation_input_tokens=usage.get("cache_creation_input_tokens") or 0,
            cache_read_input_tokens=usage.get("cache_read_input_tokens") or 0,
        )

    @property
    def tool_uses(self) -> list[ToolUse]:
        return [b for b in self.content_blocks if isinstance(b, ToolUse)]

    @property
    def has_tool_uses(self) -> bool:
        return bool(self.tool_uses)

    @property
    def thinking_content(self) -> Optional[str]:
        parts = [
            b.thinking
            for b in self.content_blocks
            if isinstance(b, ThinkingBlock) and b.thinking
        ]
        return "\n".join(parts) if parts else None


@dataclass
class SummaryMessage(Message):
    @property
    def summary(self) -> str:
        return str(self.raw.get("summary") or "")

    @property
    def leaf_uuid(self) -> Optional[str]:
        return self.raw.get("leafUuid") or self.raw.get("leaf_uuid")


@dataclass
class ResultMessage(Message):
    @property
    def subtype(self) -> Optional[str]:
        return self.raw.get("subtype")

    @property
    def is_success(self) -> bool:
        return self.subtype == "success"

    @property
    def total_cost_usd(self) -> float:
        return _number(self.raw.get("total_cost_usd") or self.raw.get("cost_usd"), float)

    @property
    def duration_ms(self) -> int:
        return _number(self.raw.get("duration_ms"), int)

    @property
    def num_turns(self) -> int:
        return _number(self.raw.get("num_turns"), int)

    @property
    def result(self) -> Optional[str]:
        return self.raw.get("result")


@dataclass
class UnknownMessage(Message):
    """Event with a ``type`` this model does not know; kept opaquely."""


MESSAGE_CLASSES: dict[str, type[Message]] = {
    MessageType.SYSTEM.value: SystemMessage,
    MessageType.USER.value: UserMessage,
    MessageType.ASSISTANT.value: AssistantMessage,
    MessageType.SUMMARY.value: SummaryMessage,
    MessageType.RESULT.value: ResultMessage,
}
