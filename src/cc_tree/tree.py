"""Build a navigable tree from a consolidated message sequence.

Node ids come from source identifiers (message uuids and ids, tool_use ids)
so rebuilding from the same messages yields the same ids, and expansion state
can be carried across refreshes.
"""

import asyncio
import concurrent.futures
import hashlib
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Iterator, Mapping, Optional, Sequence, Union

from .classifier import ClassificationResult, ContentClassifier
from .config import Config
from .linker import LinkedContext, ToolIndex, build_index
from .metadata import SessionInfo, extract_session_info
from .models import (
    AssistantMessage,
    Message,
    ResultMessage,
    SummaryMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolResult,
    ToolUse,
    UnknownMessage,
    UserMessage,
    tool_result_text,
)
from .text import first_line, single_line, split_text_into_chunks, truncate

logger = logging.getLogger(__name__)

NO_CONTENT_PLACEHOLDER = "(no content)"

Enrichment = Union[Mapping[str, Any], concurrent.futures.Future, asyncio.Future, None]


class NodeType(str, Enum):
    SESSION = "session"
    MESSAGE = "message"
    TOOL = "tool"
    RESULT = "result"
    TEXT = "text"


@dataclass
class TreeNode:
    """One node of the conversation tree.

    ``expanded`` is presentation state; everything else is derived from the
    messages.
    """

    id: str
    type: NodeType
    text: str
    parent_id: Optional[str] = None
    children: list["TreeNode"] = field(default_factory=list)
    expanded: bool = False
    data: dict = field(default_factory=dict)

    def add_child(self, node: "TreeNode") -> "TreeNode":
        node.parent_id = self.id
        self.children.append(node)
        return node

    def walk(self) -> Iterator["TreeNode"]:
        """Yield this node and all descendants, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> Optional["TreeNode"]:
        for node in self.walk():
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> dict:
        data = {}
        for key, value in self.data.items():
            if isinstance(value, ClassificationResult):
                data[key] = value.to_dict()
            elif isinstance(value, LinkedContext):
                data[key] = {
                    "tool_use_id": value.tool_use_id,
                    "tool_name": value.tool_name,
                    "input_content": value.input_content,
                }
            else:
                data[key] = value
        return {
            "id": self.id,
            "type": self.type.value,
            "text": self.text,
            "parent_id": self.parent_id,
            "expanded": self.expanded,
            "data": data,
            "children": [child.to_dict() for child in self.children],
        }


def content_hash(raw: Mapping[str, Any]) -> str:
    """Short stable hash of a raw record, for records without identifiers."""
    encoded = json.dumps(raw, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:12]


def tool_argument_label(tool_input: Mapping[str, Any]) -> str:
    """Short description of a tool call's primary argument."""
    if not tool_input:
        return ""
    for key in ("file_path", "notebook_path", "path"):
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return PurePosixPath(value).name or value
    for key in ("command", "pattern", "url", "query", "libraryName", "description"):
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return truncate(single_line(value), 30)
    return ""


class TreeBuilder:
    """Turns messages into a tree of session, message, tool, result and text nodes."""

    def __init__(
        self,
        config: Optional[Config] = None,
        classifier: Optional[ContentClassifier] = None,
    ):
        self.config = config or Config()
        self.classifier = classifier or ContentClassifier(self.config)
        self._seen_ids: set[str] = set()
        self._tool_nodes: dict[str, TreeNode] = {}
        self._index = ToolIndex({}, {})

    def build(
        self,
        messages: Sequence[Message],
        session_info: Optional[SessionInfo] = None,
        index: Optional[ToolIndex] = None,
        enrichment: Enrichment = None,
    ) -> TreeNode:
        self._seen_ids = set()
        self._tool_nodes = {}
        self._index = index if index is not None else build_index(messages)
        if session_info is None:
            session_info = extract_session_info(messages)

        root = self._create_session_node(session_info)
        self._apply_enrichment(root, enrichment)

        for position, message in enumerate(messages):
            # Resolved before this message registers its own tool nodes
            parent = self._tool_nodes.get(message.parent_tool_use_id or "", root)
            if isinstance(message, AssistantMessage):
                node = self._create_assistant_node(message)
            elif isinstance(message, UserMessage):
                node = self._create_user_node(message)
            elif isinstance(message, SystemMessage):
                if message.is_init:
                    root.data["model"] = root.data.get("model") or message.model
                    root.data["cwd"] = root.data.get("cwd") or message.cwd
                    root.data["tools"] = message.tools
                    continue
                node = self._create_system_node(message)
            elif isinstance(message, SummaryMessage):
                if not root.data.get("summary"):
                    root.data["summary"] = message.summary
                continue
            elif isinstance(message, ResultMessage):
                node = self._create_completion_node(message)
            elif isinstance(message, UnknownMessage):
                logger.debug("Skipping %s event at position %d", message.type, position)
                continue
            else:
                raise TypeError(f"unhandled message class {type(message).__name__}")

            if node is None:
                continue
            parent.add_child(node)

        return root

    def _unique_id(self, base: str) -> str:
        node_id = base
        n = 2
        while node_id in self._seen_ids:
            node_id = f"{base}~{n}"
            n += 1
        self._seen_ids.add(node_id)
        return node_id

    def _create_session_node(self, info: SessionInfo) -> TreeNode:
        session_id = info.session_id or "unknown"
        text = f"Session: {session_id[:8]}"
        if info.started_at:
            text += f" [{info.started_at}]"
        return TreeNode(
            id=self._unique_id(f"session-{session_id}"),
            type=NodeType.SESSION,
            text=text,
            expanded=True,
            data={
                "session_id": session_id,
                "model": info.model,
                "cwd": info.cwd,
                "git_branch": info.git_branch,
                "version": info.version,
                "summary": info.summary,
                "title": info.title,
                "message_count": info.message_count,
            },
        )

    def _apply_enrichment(self, root: TreeNode, enrichment: Enrichment) -> None:
        """Attach metadata that may still be loading elsewhere.

        An unfinished future becomes a placeholder node; this never waits.
        """
        if enrichment is None:
            return
        if isinstance(enrichment, (concurrent.futures.Future, asyncio.Future)):
            if not enrichment.done():
                root.add_child(
                    TreeNode(
                        id=self._unique_id(f"{root.id}-pending"),
                        type=NodeType.TEXT,
                        text="Loading metadata...",
                        data={"pending": True},
                    )
                )
                return
            if enrichment.cancelled():
                return
            error = enrichment.exception()
            if error is not None:
                root.data["enrichment_error"] = str(error)
                return
            enrichment = enrichment.result()
        if isinstance(enrichment, Mapping):
            root.data["enrichment"] = dict(enrichment)

    def _message_node_id(self, message: Message) -> str:
        key = None
        if isinstance(message, AssistantMessage):
            key = message.message_id
        key = key or message.uuid or content_hash(message.raw)
        return self._unique_id(f"msg-{key}")

    def _create_message_node(self, message: Message, role: str, preview: str) -> TreeNode:
        label = {"assistant": "Claude", "user": "User", "system": "System"}.get(role, role)
        preview = truncate(single_line(preview), self.config.tree["preview_length"])
        return TreeNode(
            id=self._message_node_id(message),
            type=NodeType.MESSAGE,
            text=f"{label}: {preview}",
            data={
                "message_id": getattr(message, "message_id", None),
                "uuid": message.uuid,
                "role": role,
                "preview": preview,
                "timestamp": message.timestamp,
                "is_sidechain": message.is_sidechain,
            },
        )

    def _add_text_children(self, node: TreeNode, text: str, prefix: str = "", kind: str = "text") -> None:
        clean = single_line(text)
        if not clean:
            return
        limit = self.config.tree["inline_text_length"]
        chunks = [clean] if len(clean) <= limit else split_text_into_chunks(clean, self.config.tree["chunk_size"])
        counter = sum(1 for child in node.children if child.type == NodeType.TEXT)
        for i, chunk in enumerate(chunks):
            counter += 1
            label = f"{prefix}{chunk}" if i == 0 else chunk
            node.add_child(
                TreeNode(
                    id=self._unique_id(f"{node.id}-text-{counter}"),
                    type=NodeType.TEXT,
                    text=label,
                    data={"kind": kind},
                )
            )

    def _create_assistant_node(self, message: AssistantMessage) -> TreeNode:
        blocks = message.content_blocks
        tool_uses = [b for b in blocks if isinstance(b, ToolUse)]
        preview = message.text_content or ""
        if not preview.strip() and tool_uses:
            if len(tool_uses) == 1:
                preview = f"Used {tool_uses[0].name}"
            else:
                names = ", ".join(t.name for t in tool_uses)
                preview = f"Used {len(tool_uses)} tools: {names}"

        node = self._create_message_node(message, message.role or "assistant", preview)
        node.data["model"] = message.model
        node.data["fragments"] = message.fragments

        for block in blocks:
            if isinstance(block, TextBlock):
                self._add_text_children(node, block.text)
            elif isinstance(block, ThinkingBlock):
                self._add_text_children(node, block.thinking, prefix="Thinking: ", kind="thinking")
            elif isinstance(block, ToolUse):
                node.add_child(self._create_tool_node(block, node))
        return node

    def _create_tool_node(self, tool_use: ToolUse, parent: TreeNode) -> TreeNode:
        base = f"tool-{tool_use.id}" if tool_use.id else f"{parent.id}-tool"
        argument = tool_argument_label(tool_use.input)
        node = TreeNode(
            id=self._unique_id(base),
            type=NodeType.TOOL,
            text=f"{tool_use.name} [{argument}]" if argument else tool_use.name,
            data={
                "tool_id": tool_use.id,
                "tool_name": tool_use.name,
                "tool_input": tool_use.input,
                "input_classification": self.classifier.classify_tool_input(tool_use),
                "has_result": False,
            },
        )
        if tool_use.id:
            self._tool_nodes[tool_use.id] = node
            linked = self._index.link_for(tool_use.id)
            if linked is not None and self._index.result_for(tool_use.id) is not None:
                node.add_child(self._create_result_node(linked))
                node.data["has_result"] = True
        return node

    def _create_result_node(self, linked: LinkedContext) -> TreeNode:
        classification = self.classifier.classify_linked(linked)
        text = linked.result_text
        is_error = linked.is_error or text.lstrip().lower().startswith("error:")

        if is_error:
            label = "Error"
            line = first_line(text.strip())
            if line:
                label = f"Error: {truncate(single_line(line), 60)}"
        else:
            label = truncate(single_line(first_line(text.strip())), 60) or NO_CONTENT_PLACEHOLDER

        node = TreeNode(
            id=self._unique_id(f"result-{linked.tool_use_id}"),
            type=NodeType.RESULT,
            text=label,
            data={
                "tool_use_id": linked.tool_use_id,
                "tool_name": linked.tool_name,
                "content": text,
                "is_error": is_error,
                "linked": linked,
                "classification": classification,
            },
        )
        if text.strip():
            self._add_text_children(node, text)
        else:
            node.add_child(
                TreeNode(
                    id=self._unique_id(f"{node.id}-text-1"),
                    type=NodeType.TEXT,
                    text=NO_CONTENT_PLACEHOLDER,
                    data={"kind": "placeholder"},
                )
            )
        return node

    def _create_user_node(self, message: UserMessage) -> Optional[TreeNode]:
        blocks = message.content_blocks
        texts = [b.text for b in blocks if isinstance(b, TextBlock) and b.text.strip()]
        # Results with a known invocation are shown under their tool node
        orphans = [
            b
            for b in blocks
            if isinstance(b, ToolResult) and self._index.tool_for(b.tool_use_id) is None
        ]
        if not texts and not orphans:
            return None

        command = message.command_info
        if command and (command.name or command.args):
            preview = " ".join(p for p in (command.name, command.args) if p)
        elif texts:
            preview = texts[0]
        else:
            preview = f"Tool result for {orphans[0].tool_use_id or 'unknown tool'}"

        node = self._create_message_node(message, "user", preview)
        for text in texts:
            self._add_text_children(node, text)
        for orphan in orphans:
            logger.debug("No tool_use found for tool_result %s", orphan.tool_use_id)
            linked = LinkedContext(
                tool_use_id=orphan.tool_use_id or content_hash({"content": tool_result_text(orphan.content)}),
                tool_name=None,
                input_content=None,
                result_content=orphan.content,
                is_error=orphan.is_error,
            )
            result_node = self._create_result_node(linked)
            result_node.data["orphan"] = True
            node.add_child(result_node)
        return node

    def _create_system_node(self, message: SystemMessage) -> TreeNode:
        preview = message.content or message.subtype or "system"
        node = self._create_message_node(message, "system", preview)
        node.data["subtype"] = message.subtype
        node.data["level"] = message.level
        if message.content:
            self._add_text_children(node, message.content)
        return node

    def _create_completion_node(self, message: ResultMessage) -> TreeNode:
        text = (
            f"Session Complete: {message.subtype or 'unknown'} | "
            f"Cost: ${message.total_cost_usd:.4f} | "
            f"Duration: {message.duration_ms}ms | Turns: {message.num_turns}"
        )
        key = message.uuid or content_hash(message.raw)
        return TreeNode(
            id=self._unique_id(f"complete-{key}"),
            type=NodeType.TEXT,
            text=text,
            data={
                "kind": "completion",
                "success": message.is_success,
                "cost_usd": message.total_cost_usd,
                "duration_ms": message.duration_ms,
                "num_turns": message.num_turns,
            },
        )


def build_tree(
    messages: Sequence[Message],
    session_info: Optional[SessionInfo] = None,
    *,
    index: Optional[ToolIndex] = None,
    config: Optional[Config] = None,
    classifier: Optional[ContentClassifier] = None,
    enrichment: Enrichment = None,
) -> TreeNode:
    """Build the conversation tree for ``messages``.

    Empty input gives a session root with no children.
    """
    builder = TreeBuilder(config=config, classifier=classifier)
    return builder.build(messages, session_info=session_info, index=index, enrichment=enrichment)


def collect_classifications(root: TreeNode) -> dict[str, ClassificationResult]:
    """Map every result node id to its classification."""
    return {
        node.id: node.data["classification"]
        for node in root.walk()
        if node.type == NodeType.RESULT and "classification" in node.data
    }


def collect_expanded_ids(root: TreeNode) -> set[str]:
    return {node.id for node in root.walk() if node.expanded}


def apply_expanded_ids(root: TreeNode, expanded_ids: set[str]) -> None:
    """Restore expansion state by node id; nodes not listed are collapsed."""
    for node in root.walk():
        node.expanded = node.id in expanded_ids
