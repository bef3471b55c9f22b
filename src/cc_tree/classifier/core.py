"""Deterministic content classification.

Classification is driven by the structure Claude Code already provides: the
content block type, the tool that produced a result, the message role and the
error flag. Content shape is only sniffed when none of that is known.
"""

import hashlib
import json
import logging
from typing import Any, Mapping, Optional

from ..config import Config
from ..linker import LinkedContext, serialize_tool_input
from ..models import ToolUse, parse_mcp_tool_name
from . import tool_context
from .display_strategy import count_lines, get_display_strategy, is_forced_popup, sized_strategy
from .json_detector import is_json_content, robust_json_validation
from .results import ClassificationContext, ClassificationResult, ContentType, DisplayStrategy

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = Config()


def _result(
    content_type: ContentType,
    strategy: DisplayStrategy,
    confidence: float,
    metadata: dict,
) -> ClassificationResult:
    return ClassificationResult(
        content_type=content_type,
        confidence=confidence,
        display_strategy=strategy,
        metadata=metadata,
        force_popup=is_forced_popup(strategy),
    )


def classify_from_structured_data(
    block: Optional[Mapping[str, Any]],
    content: str,
    context: Optional[ClassificationContext] = None,
    config: Optional[Config] = None,
) -> ClassificationResult:
    """Classify content using the structured data around it.

    Rules, first match wins:

    1. tool_use blocks are tool input, always shown as a JSON popup
    2. errors get the highlighted error popup and an ``error_type`` tag
    3. shell tools produce terminal-style command output
    4. MCP tools returning JSON are API responses with folding
    5. file-reading tools produce file content, inline when small
    6. without any tool context, content shape decides

    Args:
        block: Raw content block (``tool_use``, ``tool_result``, ``text``...)
        content: Text to classify
        context: Tool name, role, input/error flags and file path, if known
        config: Thresholds and display toggles (defaults when omitted)

    Returns:
        A ClassificationResult; never raises for odd input
    """
    config = config or _DEFAULT_CONFIG
    block = block or {}
    context = context or ClassificationContext()
    content = content if isinstance(content, str) else str(content or "")
    max_json = config.thresholds["json_parse_max_size"]
    structured = config.confidence["structured"]

    tool_name = context.tool_name or block.get("tool_name")
    metadata: dict[str, Any] = {
        "content_length": len(content),
        "line_count": count_lines(content),
        "structured_source": True,
    }
    if tool_name:
        metadata["tool_name"] = tool_name

    # 1. Tool input
    if block.get("type") == "tool_use" or context.is_input:
        metadata["tool_name"] = block.get("name") or tool_name
        if block.get("id"):
            metadata["tool_id"] = block["id"]
        metadata["is_tool_input"] = True
        return _result(
            ContentType.TOOL_INPUT,
            get_display_strategy(ContentType.TOOL_INPUT, config),
            structured,
            metadata,
        )

    if block.get("tool_use_id"):
        metadata["tool_use_id"] = block["tool_use_id"]

    # 2. Errors
    if block.get("is_error") or context.is_error:
        is_json, parsed = robust_json_validation(content, max_json)
        content_type = (
            ContentType.ERROR_OBJECT if is_json and isinstance(parsed, dict) else ContentType.ERROR_CONTENT
        )
        metadata["error_type"] = tool_context.infer_error_type(content)
        return _result(content_type, get_display_strategy(content_type, config), structured, metadata)

    if tool_name:
        return _classify_tool_output(content, tool_name, context, config, metadata)

    # 6. No structured context: sniff the content
    metadata["structured_source"] = False
    is_json, parsed = is_json_content(content, max_json)
    if is_json:
        metadata["is_json"] = True
        metadata["json_parsed"] = parsed is not None
        content_type = ContentType.JSON_API_RESPONSE
        if isinstance(parsed, dict):
            if "jsonrpc" in parsed or ("result" in parsed and "id" in parsed):
                metadata["is_mcp_response"] = True
            if parsed.get("error"):
                content_type = ContentType.ERROR_OBJECT
                metadata["error_type"] = tool_context.infer_error_type(json.dumps(parsed["error"]))
        return _result(
            content_type,
            get_display_strategy(content_type, config),
            config.confidence["json_sniffed"],
            metadata,
        )

    if context.message_role != "assistant" and tool_context.detect_error_patterns(content):
        metadata["error_detected"] = True
        metadata["error_type"] = tool_context.infer_error_type(content)
        return _result(
            ContentType.ERROR_CONTENT,
            get_display_strategy(ContentType.ERROR_CONTENT, config),
            config.confidence["error_sniffed"],
            metadata,
        )

    return _result(
        ContentType.GENERIC_TEXT,
        sized_strategy(ContentType.GENERIC_TEXT, content, config),
        config.confidence["fallback"],
        metadata,
    )


def _classify_tool_output(
    content: str,
    tool_name: str,
    context: ClassificationContext,
    config: Config,
    metadata: dict,
) -> ClassificationResult:
    """Rules 3-5 plus the generic-tool fallback."""
    structured = config.confidence["structured"]
    max_json = config.thresholds["json_parse_max_size"]

    # 3. Shell output, regardless of size
    if tool_context.is_shell_tool(tool_name):
        metadata["tool_type"] = "shell"
        return _result(
            ContentType.COMMAND_OUTPUT,
            get_display_strategy(ContentType.COMMAND_OUTPUT, config),
            structured,
            metadata,
        )

    # 4. MCP JSON responses
    mcp_name = parse_mcp_tool_name(tool_name)
    if mcp_name is not None:
        metadata["tool_type"] = "mcp"
        metadata["api_source"] = mcp_name.server
        metadata["mcp_tool"] = mcp_name.tool
        is_json, parsed = robust_json_validation(content, max_json)
        if is_json:
            metadata["is_json"] = True
            if isinstance(parsed, dict) and "jsonrpc" in parsed:
                metadata["is_mcp_response"] = True
            return _result(
                ContentType.JSON_API_RESPONSE,
                get_display_strategy(ContentType.JSON_API_RESPONSE, config),
                structured,
                metadata,
            )

    # 5. File content
    elif tool_context.is_file_read_tool(tool_name):
        metadata["tool_type"] = "file_operation"
        metadata["operation"] = tool_name.lower()
        language = tool_context.language_from_path(context.file_path)
        if language:
            metadata["language_source"] = "path"
        else:
            language = tool_context.detect_file_type(content)
            metadata["language_source"] = "content"
        metadata["language"] = language
        if context.file_path:
            metadata["file_path"] = context.file_path
        return _result(
            ContentType.FILE_CONTENT,
            sized_strategy(ContentType.FILE_CONTENT, content, config),
            structured,
            metadata,
        )

    elif tool_name in tool_context.FILE_WRITE_TOOLS:
        metadata["tool_type"] = "file_operation"
        metadata["operation"] = tool_name.lower()
    else:
        metadata.setdefault("tool_type", "generic")

    # Known tool without a dedicated rule: JSON gets folding, text is sized
    is_json, _ = robust_json_validation(content, max_json)
    if is_json:
        metadata["is_json"] = True
        return _result(
            ContentType.JSON_API_RESPONSE,
            get_display_strategy(ContentType.JSON_API_RESPONSE, config),
            structured,
            metadata,
        )
    return _result(
        ContentType.GENERIC_TEXT,
        sized_strategy(ContentType.GENERIC_TEXT, content, config),
        structured,
        metadata,
    )


class ClassificationCache:
    """Read-through memo of classification results.

    Entries are immutable. The cache only grows; when it reaches
    ``max_entries`` it is emptied, which costs recomputation and nothing else.
    """

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._entries: dict[str, ClassificationResult] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(
        block: Optional[Mapping[str, Any]],
        content: str,
        context: Optional[ClassificationContext],
    ) -> str:
        block = block or {}
        context = context or ClassificationContext()
        parts = [
            str(block.get("type") or ""),
            str(block.get("name") or ""),
            str(block.get("id") or ""),
            str(block.get("tool_use_id") or ""),
            str(block.get("tool_name") or ""),
            "1" if block.get("is_error") else "0",
            context.tool_name or "",
            context.message_role or "",
            "1" if context.is_input else "0",
            "1" if context.is_error else "0",
            context.file_path or "",
            content,
        ]
        digest = hashlib.sha256()
        for part in parts:
            digest.update(part.encode("utf-8", errors="surrogatepass"))
            digest.update(b"\x00")
        return digest.hexdigest()

    def get(self, key: str) -> Optional[ClassificationResult]:
        result = self._entries.get(key)
        if result is None:
            self.misses += 1
        else:
            self.hits += 1
        return result

    def put(self, key: str, result: ClassificationResult) -> None:
        if key in self._entries:
            return
        if len(self._entries) >= self.max_entries:
            logger.debug("Classification cache full (%d entries); clearing", len(self._entries))
            self._entries.clear()
        self._entries[key] = result

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ContentClassifier:
    """Classifier bound to a configuration and an optional cache."""

    def __init__(self, config: Optional[Config] = None, cache: Optional[ClassificationCache] = None):
        self.config = config or Config()
        if cache is None and self.config.cache_classifications:
            cache = ClassificationCache(self.config.cache_max_entries)
        self.cache = cache

    def classify_from_structured_data(
        self,
        block: Optional[Mapping[str, Any]],
        content: str,
        context: Optional[ClassificationContext] = None,
    ) -> ClassificationResult:
        if self.cache is None:
            return classify_from_structured_data(block, content, context, self.config)

        content = content if isinstance(content, str) else str(content or "")
        key = ClassificationCache.make_key(block, content, context)
        result = self.cache.get(key)
        if result is None:
            result = classify_from_structured_data(block, content, context, self.config)
            self.cache.put(key, result)
        return result

    def classify_tool_input(self, tool_use: ToolUse) -> ClassificationResult:
        block = {"type": "tool_use", "id": tool_use.id, "name": tool_use.name}
        context = ClassificationContext(tool_name=tool_use.name, message_role="assistant", is_input=True)
        return self.classify_from_structured_data(block, serialize_tool_input(tool_use.input), context)

    def classify_linked(self, linked: LinkedContext) -> ClassificationResult:
        """Classify a tool result using what the linker knows about it."""
        block = {
            "type": "tool_result",
            "tool_use_id": linked.tool_use_id,
            "is_error": linked.is_error,
        }
        context = ClassificationContext.from_linked(linked)
        return self.classify_from_structured_data(block, linked.result_text, context)

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()
