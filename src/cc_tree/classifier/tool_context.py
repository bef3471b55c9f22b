"""Tool-specific knowledge used by the classifier."""

import re
from pathlib import PurePosixPath
from typing import Optional

from ..models import parse_mcp_tool_name

SHELL_TOOL_PATTERN = re.compile(r"^(bash|shell|zsh)|^sh$", re.IGNORECASE)

# Tools whose results are file contents or file listings
FILE_READ_TOOLS = {"Read", "NotebookRead"}
FILE_LISTING_TOOLS = {"Glob", "LS", "Grep"}
FILE_WRITE_TOOLS = {"Write", "Edit", "MultiEdit", "NotebookEdit"}

EXTENSION_LANGUAGES = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".lua": "lua",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".sh": "bash",
    ".bash": "bash",
    ".zsh": "bash",
    ".json": "json",
    ".jsonl": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".ini": "ini",
    ".cfg": "ini",
    ".md": "markdown",
    ".html": "html",
    ".htm": "html",
    ".xml": "xml",
    ".css": "css",
    ".sql": "sql",
    ".vim": "vim",
}

FILENAME_LANGUAGES = {
    "Makefile": "make",
    "Dockerfile": "dockerfile",
    "CMakeLists.txt": "cmake",
}

SHEBANG_LANGUAGES = [
    ("python", "python"),
    ("node", "javascript"),
    ("bash", "bash"),
    ("/sh", "bash"),
    ("zsh", "bash"),
    ("lua", "lua"),
    ("ruby", "ruby"),
]

CONTENT_LANGUAGE_PATTERNS = [
    (re.compile(r"^\s*function\b", re.MULTILINE), "javascript"),
    (re.compile(r"^\s*import\s.*\sfrom\s", re.MULTILINE), "javascript"),
    (re.compile(r"^\s*def\s+\w+", re.MULTILINE), "python"),
    (re.compile(r"^\s*class\s+\w+.*:\s*$", re.MULTILINE), "python"),
    (re.compile(r"^\s*(import|from)\s+[\w.]+", re.MULTILINE), "python"),
    (re.compile(r"^\s*package\s+\w+", re.MULTILINE), "go"),
    (re.compile(r"^\s*func\s+", re.MULTILINE), "go"),
    (re.compile(r"^\s*#include\b", re.MULTILINE), "c"),
    (re.compile(r"^\s*local\s+.*=", re.MULTILINE), "lua"),
]

# Line-number prefix the Read tool puts in front of each line ("   12→")
READ_LINE_PREFIX = re.compile(r"^\s*\d+→", re.MULTILINE)

ERROR_PATTERNS = [
    "error:",
    "failed:",
    "exception:",
    "traceback",
    "panic:",
    "fatal:",
    "not found",
    "permission denied",
    "access denied",
]

ERROR_TYPES = [
    ("command_not_found", ("command not found",)),
    ("file_not_found", ("enoent", "no such file", "not found", "does not exist")),
    ("permission_denied", ("eacces", "permission denied", "access denied")),
    ("syntax_error", ("syntax error", "syntaxerror", "parse error")),
    ("timeout", ("timeout", "timed out")),
]


def is_shell_tool(tool_name: Optional[str]) -> bool:
    return bool(tool_name) and SHELL_TOOL_PATTERN.match(tool_name) is not None


def is_mcp_tool(tool_name: Optional[str]) -> bool:
    return parse_mcp_tool_name(tool_name) is not None


def is_file_read_tool(tool_name: Optional[str]) -> bool:
    return tool_name in FILE_READ_TOOLS or tool_name in FILE_LISTING_TOOLS


def language_from_path(file_path: Optional[str]) -> Optional[str]:
    """Infer a syntax language from a file path."""
    if not file_path:
        return None
    path = PurePosixPath(file_path.replace("\\", "/"))
    if path.name in FILENAME_LANGUAGES:
        return FILENAME_LANGUAGES[path.name]
    return EXTENSION_LANGUAGES.get(path.suffix.lower())


def detect_file_type(content: str) -> str:
    """Sniff a syntax language from content alone."""
    if not content:
        return "text"

    sample = READ_LINE_PREFIX.sub("", content[:2000])
    head = sample.lstrip()[:200]
    head_lower = head.lower()

    if head.startswith("#!"):
        first_line = head.splitlines()[0]
        for marker, language in SHEBANG_LANGUAGES:
            if marker in first_line:
                return language

    if head.startswith("{") or head.startswith("["):
        return "json"

    if head_lower.startswith("<?xml"):
        return "xml"
    if head_lower.startswith("<!doctype html") or head_lower.startswith("<html"):
        return "html"

    for pattern, language in CONTENT_LANGUAGE_PATTERNS:
        if pattern.search(sample):
            return language

    return "text"


def detect_error_patterns(content: str) -> bool:
    if not content:
        return False
    content_lower = content.lower()
    return any(pattern in content_lower for pattern in ERROR_PATTERNS)


def infer_error_type(content: str) -> str:
    """Heuristic error category for error content."""
    if not content:
        return "unknown"
    content_lower = content.lower()
    for error_type, needles in ERROR_TYPES:
        if any(needle in content_lower for needle in needles):
            return error_type
    return "generic"
