"""Parse Claude Code JSONL lines into typed messages."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional

from .models import Message

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    DECODE_ERROR = "decode_error"
    UNRECOGNIZED_TYPE = "unrecognized_type"
    # Reported by the linker, not by the parser
    LINK_MISMATCH = "link_mismatch"


class ParseError(Exception):
    """A recoverable problem with one input line."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        line_number: Optional[int] = None,
        raw: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.line_number = line_number
        self.raw = raw

    def __str__(self) -> str:
        if self.line_number is not None:
            return f"Line {self.line_number}: {self.message}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"ParseError(kind={self.kind.value!r}, message={self.message!r}, "
            f"line_number={self.line_number!r})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParseError):
            return NotImplemented
        return (self.kind, self.message, self.line_number, self.raw) == (
            other.kind,
            other.message,
            other.line_number,
            other.raw,
        )

    __hash__ = None  # type: ignore[assignment]


class ParseResult(NamedTuple):
    messages: list[Message]
    errors: list[ParseError]


def parse_line(
    raw: str, line_number: Optional[int] = None
) -> tuple[Optional[Message], Optional[ParseError]]:
    """Parse one JSONL line.

    Returns:
        ``(None, None)`` for blank lines, ``(None, error)`` for lines that
        cannot become a message, otherwise ``(message, None)``.
    """
    if not isinstance(raw, str):
        raise TypeError(f"expected str, got {type(raw).__name__}")

    line = raw.strip()
    if not line:
        return None, None

    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        error = ParseError(
            ErrorKind.DECODE_ERROR,
            f"Failed to parse JSON: {e}",
            line_number=line_number,
            raw=raw,
        )
        logger.debug("%s", error)
        return None, error

    if not isinstance(data, dict):
        error = ParseError(
            ErrorKind.UNRECOGNIZED_TYPE,
            f"Expected a JSON object, got {type(data).__name__}",
            line_number=line_number,
            raw=raw,
        )
        logger.debug("%s", error)
        return None, error

    message_type = data.get("type")
    if not isinstance(message_type, str) or not message_type:
        error = ParseError(
            ErrorKind.UNRECOGNIZED_TYPE,
            "Missing required field: type",
            line_number=line_number,
            raw=raw,
        )
        logger.debug("%s", error)
        return None, error

    return Message.from_json(data), None


def parse_lines(lines: Iterable[str], strict: bool = False) -> ParseResult:
    """Parse every line, collecting messages and errors.

    A bad line never stops the batch unless ``strict`` is set, in which case
    the first error is raised.
    """
    messages: list[Message] = []
    errors: list[ParseError] = []

    for i, line in enumerate(lines, start=1):
        message, error = parse_line(line, line_number=i)
        if error is not None:
            if strict:
                raise error
            errors.append(error)
        elif message is not None:
            messages.append(message)

    if errors:
        logger.info("Parsed %d messages with %d errors", len(messages), len(errors))
    return ParseResult(messages=messages, errors=errors)


def iter_jsonl_lines(file_path: Path) -> Iterator[str]:
    """Yield each raw line from a JSONL file without the trailing newline."""
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            yield line.rstrip("\n")
