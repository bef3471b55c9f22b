"""Classification result types."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional

if TYPE_CHECKING:
    from ..linker import LinkedContext


class ContentType(str, Enum):
    # Always JSON display
    TOOL_INPUT = "tool_input"
    JSON_API_RESPONSE = "json_api"
    ERROR_OBJECT = "error_object"

    # Context-aware display
    FILE_CONTENT = "file_content"
    COMMAND_OUTPUT = "command_output"
    ERROR_CONTENT = "error_content"

    GENERIC_TEXT = "generic_text"


class DisplayStrategy(str, Enum):
    JSON_POPUP_ALWAYS = "json_popup_always"
    JSON_POPUP_WITH_FOLDING = "json_popup_with_folding"
    JSON_POPUP = "json_popup"
    ERROR_POPUP_HIGHLIGHTED = "error_popup_highlighted"
    TERMINAL_STYLE_POPUP = "terminal_style_popup"
    SYNTAX_HIGHLIGHTED_POPUP = "syntax_highlighted_popup"
    INLINE_WITH_SYNTAX = "inline_with_syntax"
    INLINE_TEXT_ONLY = "inline_text_only"
    LARGE_CONTENT_POPUP = "large_content_popup"
    TEXT_POPUP = "text_popup"


# Strategies that pop out regardless of content size
FORCED_POPUP_STRATEGIES = frozenset(
    {
        DisplayStrategy.JSON_POPUP_ALWAYS,
        DisplayStrategy.JSON_POPUP_WITH_FOLDING,
        DisplayStrategy.ERROR_POPUP_HIGHLIGHTED,
        DisplayStrategy.TERMINAL_STYLE_POPUP,
    }
)


@dataclass(frozen=True)
class ClassificationResult:
    """How a piece of content should be presented.

    Instances are immutable so cached results can be shared safely.
    """

    content_type: ContentType
    confidence: float
    display_strategy: DisplayStrategy
    metadata: Mapping[str, Any] = field(default_factory=dict)
    force_popup: bool = False

    def __post_init__(self):
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def is_inline(self) -> bool:
        return self.display_strategy in (
            DisplayStrategy.INLINE_WITH_SYNTAX,
            DisplayStrategy.INLINE_TEXT_ONLY,
        )

    def to_dict(self) -> dict:
        return {
            "content_type": self.content_type.value,
            "confidence": self.confidence,
            "display_strategy": self.display_strategy.value,
            "metadata": dict(self.metadata),
            "force_popup": self.force_popup,
        }


@dataclass(frozen=True)
class ClassificationContext:
    """Structured facts about where a piece of content came from."""

    tool_name: Optional[str] = None
    message_role: Optional[str] = None
    is_input: bool = False
    is_error: bool = False
    file_path: Optional[str] = None

    @property
    def has_tool_context(self) -> bool:
        return bool(self.tool_name)

    @classmethod
    def from_linked(
        cls, linked: "LinkedContext", message_role: Optional[str] = "user"
    ) -> "ClassificationContext":
        return cls(
            tool_name=linked.tool_name,
            message_role=message_role,
            is_input=False,
            is_error=linked.is_error,
            file_path=linked.file_path,
        )
