"""JSON detection for content classification."""

import json
import re
from typing import Any

# Loose structural hints used when content is not strictly valid JSON
JSON_HINT_PATTERNS = [
    re.compile(r"^\s*\{.*\}\s*$", re.DOTALL),
    re.compile(r"^\s*\[.*\]\s*$", re.DOTALL),
    re.compile(r'"[^"]*"\s*:\s*[\[{]'),
    re.compile(r'"[^"]*"\s*:\s*"[^"]*"'),
    re.compile(r'"type"\s*:\s*"[^"]*"'),
]


def robust_json_validation(content: str, max_size: int = 1024 * 1024) -> tuple[bool, Any]:
    """Strictly validate JSON object or array content.

    Returns:
        ``(True, parsed)`` when content decodes to a dict or list, otherwise
        ``(False, None)``. Content over ``max_size`` is not decoded.
    """
    if not content or len(content) > max_size:
        return False, None

    trimmed = content.strip()
    if not trimmed:
        return False, None

    # Cheap delimiter check before paying for a decode
    if not (
        (trimmed[0] == "{" and trimmed[-1] == "}")
        or (trimmed[0] == "[" and trimmed[-1] == "]")
    ):
        return False, None

    try:
        parsed = json.loads(trimmed)
    except (json.JSONDecodeError, RecursionError):
        return False, None

    if isinstance(parsed, (dict, list)):
        return True, parsed
    return False, None


def count_json_hints(content: str) -> int:
    return sum(1 for pattern in JSON_HINT_PATTERNS if pattern.search(content))


def is_json_content(content: str, max_size: int = 1024 * 1024) -> tuple[bool, Any]:
    """Detect JSON, falling back to structural hints for truncated JSON.

    The parsed value is None when detection relied on hints only.
    """
    is_valid, parsed = robust_json_validation(content, max_size)
    if is_valid:
        return True, parsed
    if not content or len(content) > max_size:
        return False, None
    return count_json_hints(content) >= 2, None
