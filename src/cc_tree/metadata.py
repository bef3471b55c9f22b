"""Session metadata extracted from a message sequence for display headers."""

from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from .models import (
    COMMAND_ARGS_PATTERN,
    COMMAND_NAME_PATTERN,
    AssistantMessage,
    Message,
    ResultMessage,
    SummaryMessage,
    SystemMessage,
    UserMessage,
)
from .text import first_line, truncate

TITLE_MAX_LENGTH = 80


@dataclass
class SessionInfo:
    """Header information about a conversation."""

    session_id: Optional[str] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None
    version: Optional[str] = None
    model: Optional[str] = None
    tools: list[str] = field(default_factory=list)
    message_count: int = 0
    summary: Optional[str] = None
    title: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResultInfo:
    """Outcome reported by the final ``result`` event of a run."""

    subtype: Optional[str]
    success: bool
    cost_usd: float
    duration_ms: int
    num_turns: int

    def to_dict(self) -> dict:
        return asdict(self)


def extract_title(text: Optional[str]) -> Optional[str]:
    """Title from the first user message.

    Slash-command arguments win over the raw command markup; only the first
    line is kept.
    """
    if not text:
        return None
    args = COMMAND_ARGS_PATTERN.search(text)
    name = COMMAND_NAME_PATTERN.search(text)
    if args and args.group(1).strip():
        candidate = args.group(1)
    elif name and name.group(1).strip():
        candidate = name.group(1)
    else:
        candidate = text
    title = first_line(candidate.strip()).strip()
    if not title:
        return None
    return truncate(title, TITLE_MAX_LENGTH)


def extract_session_info(messages: Iterable[Message]) -> SessionInfo:
    """Collect session metadata from a (consolidated) message sequence.

    A system ``init`` event is authoritative for id, model, cwd and tools;
    otherwise the first message carrying each field wins.
    """
    messages = list(messages)
    info = SessionInfo(message_count=len(messages))

    init = next(
        (m for m in messages if isinstance(m, SystemMessage) and m.is_init),
        None,
    )
    if init is not None:
        info.session_id = init.session_id
        info.model = init.model
        info.cwd = init.cwd
        info.tools = init.tools

    for message in messages:
        if not info.session_id and message.session_id:
            info.session_id = message.session_id
        if not info.cwd and message.cwd:
            info.cwd = message.cwd
        if not info.git_branch and message.git_branch:
            info.git_branch = message.git_branch
        if not info.version and message.version:
            info.version = message.version

        timestamp = message.timestamp
        if isinstance(timestamp, str) and timestamp:
            if not info.started_at or timestamp < info.started_at:
                info.started_at = timestamp
            if not info.ended_at or timestamp > info.ended_at:
                info.ended_at = timestamp

        if isinstance(message, SummaryMessage):
            if not info.summary and message.summary:
                info.summary = message.summary
        elif isinstance(message, AssistantMessage):
            if not info.model and message.model:
                info.model = message.model
        elif isinstance(message, UserMessage):
            if not info.title and not message.is_tool_result and not message.raw.get("isMeta"):
                info.title = extract_title(message.text_content)

    return info


def extract_result_info(messages: Iterable[Message]) -> Optional[ResultInfo]:
    """Outcome of the last ``result`` event, if any."""
    result = None
    for message in messages:
        if isinstance(message, ResultMessage):
            result = message
    if result is None:
        return None
    return ResultInfo(
        subtype=result.subtype,
        success=result.is_success,
        cost_usd=result.total_cost_usd,
        duration_ms=result.duration_ms,
        num_turns=result.num_turns,
    )
