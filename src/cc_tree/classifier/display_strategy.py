"""Display strategy selection for classified content."""

from typing import Optional

from ..config import Config
from .results import FORCED_POPUP_STRATEGIES, ContentType, DisplayStrategy


def count_lines(content: Optional[str]) -> int:
    if not content:
        return 0
    return content.count("\n") + 1


def get_display_strategy(content_type: ContentType, config: Config) -> DisplayStrategy:
    """Default strategy for a content type, honouring the display toggles.

    Size-dependent types (file content, generic text) get their popup variant
    here; callers pick the inline variant when content is small.
    """
    display = config.display
    if content_type == ContentType.TOOL_INPUT:
        return DisplayStrategy.JSON_POPUP_ALWAYS
    if content_type == ContentType.JSON_API_RESPONSE:
        if display["json_folding_for_mcp"]:
            return DisplayStrategy.JSON_POPUP_WITH_FOLDING
        return DisplayStrategy.JSON_POPUP
    if content_type in (ContentType.ERROR_OBJECT, ContentType.ERROR_CONTENT):
        if display["error_highlighting"]:
            return DisplayStrategy.ERROR_POPUP_HIGHLIGHTED
        return DisplayStrategy.TEXT_POPUP
    if content_type == ContentType.COMMAND_OUTPUT:
        if display["terminal_style_for_bash"]:
            return DisplayStrategy.TERMINAL_STYLE_POPUP
        return DisplayStrategy.TEXT_POPUP
    if content_type == ContentType.FILE_CONTENT:
        return DisplayStrategy.SYNTAX_HIGHLIGHTED_POPUP
    return DisplayStrategy.LARGE_CONTENT_POPUP


def exceeds_inline_threshold(content: str, config: Config) -> bool:
    """True when content is too large to show inline."""
    thresholds = config.thresholds
    return (
        count_lines(content) > thresholds["rich_display_lines"]
        or len(content) > thresholds["rich_display_chars"]
    )


def sized_strategy(content_type: ContentType, content: str, config: Config) -> DisplayStrategy:
    """Strategy for size-dependent types: inline when small, popup when large."""
    if content_type == ContentType.FILE_CONTENT:
        if exceeds_inline_threshold(content, config):
            return DisplayStrategy.SYNTAX_HIGHLIGHTED_POPUP
        return DisplayStrategy.INLINE_WITH_SYNTAX
    if exceeds_inline_threshold(content, config):
        return DisplayStrategy.LARGE_CONTENT_POPUP
    return DisplayStrategy.INLINE_TEXT_ONLY


def is_forced_popup(strategy: DisplayStrategy) -> bool:
    return strategy in FORCED_POPUP_STRATEGIES

