"""Batch and streaming processing of a conversation.

Both modes push lines through ``parse_line`` into one message buffer and
derive everything else from that buffer on ``refresh``, so a file read in one
go and the same file streamed line by line produce identical trees.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, Iterable, Optional

from .classifier import ClassificationResult, ContentClassifier
from .config import Config
from .consolidator import consolidate
from .linker import ToolIndex, build_index
from .metadata import ResultInfo, SessionInfo, extract_result_info, extract_session_info
from .models import Message
from .parser import ErrorKind, ParseError, parse_line
from .tree import (
    Enrichment,
    TreeBuilder,
    TreeNode,
    apply_expanded_ids,
    collect_classifications,
    collect_expanded_ids,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionSnapshot:
    """Everything the presentation layer needs after one refresh."""

    root: TreeNode
    messages: list[Message]
    index: ToolIndex
    classifications: dict[str, ClassificationResult]
    session_info: SessionInfo
    result_info: Optional[ResultInfo]
    errors: list[ParseError] = field(default_factory=list)
    link_mismatches: list[ParseError] = field(default_factory=list)
    stream_errors: list[str] = field(default_factory=list)
    complete: bool = False
    cancelled: bool = False

    @property
    def error_count(self) -> int:
        return len(self.errors)


class SessionProcessor:
    """Accumulates lines of one conversation and rebuilds its tree on demand.

    Line sources call ``on_line`` for every line, then ``on_complete`` or
    ``on_error``. The message buffer is only ever appended to; the tool index
    and tree are rebuilt wholesale on each ``refresh``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        classifier: Optional[ContentClassifier] = None,
        on_refresh: Optional[Callable[[SessionSnapshot], None]] = None,
    ):
        self.config = config or Config()
        self.classifier = classifier or ContentClassifier(self.config)
        self.on_refresh = on_refresh
        self.enrichment: Enrichment = None

        self._raw_messages: list[Message] = []
        self._errors: list[ParseError] = []
        self._stream_errors: list[str] = []
        self._line_number = 0
        self._complete = False
        self._cancelled = False
        self._expanded_ids: Optional[set[str]] = None
        self._last_snapshot: Optional[SessionSnapshot] = None

    @classmethod
    def process_lines(
        cls,
        lines: Iterable[str],
        config: Optional[Config] = None,
        classifier: Optional[ContentClassifier] = None,
    ) -> SessionSnapshot:
        """Batch mode: ingest all lines and build the tree once."""
        processor = cls(config=config, classifier=classifier)
        processor.feed_lines(lines)
        processor.on_complete()
        return processor.refresh()

    @property
    def raw_messages(self) -> list[Message]:
        return list(self._raw_messages)

    @property
    def messages(self) -> list[Message]:
        """Consolidated view of the buffer."""
        return consolidate(self._raw_messages)

    @property
    def errors(self) -> list[ParseError]:
        return list(self._errors)

    @property
    def complete(self) -> bool:
        return self._complete

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def last_snapshot(self) -> Optional[SessionSnapshot]:
        return self._last_snapshot

    def feed_line(self, line: str) -> Optional[Message]:
        """Parse one line into the buffer. Ignored after cancel or completion."""
        if self._cancelled or self._complete:
            logger.debug("Ignoring line after stream ended")
            return None

        self._line_number += 1
        message, error = parse_line(line, line_number=self._line_number)
        if error is not None:
            self._errors.append(error)
        elif message is not None:
            self._raw_messages.append(message)
        return message

    def feed_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.feed_line(line)

    # Line source callbacks

    def on_line(self, line: str) -> None:
        before = self._line_number
        self.feed_line(line)
        if self._line_number == before:
            return
        interval = self.config.refresh_interval
        if self.on_refresh and interval > 0 and self._line_number % interval == 0:
            self.refresh()

    def on_complete(self) -> None:
        self._complete = True
        if self.on_refresh:
            self.refresh()

    def on_error(self, error: object) -> None:
        """Record a source failure; lines already received stay valid."""
        logger.warning("Line source error: %s", error)
        self._stream_errors.append(str(error))

    def cancel(self) -> None:
        """Stop accepting lines. The buffer is kept and stays renderable."""
        self._cancelled = True

    async def consume(self, lines: AsyncIterable[str]) -> SessionSnapshot:
        """Consume an async line source until it ends or the task is cancelled.

        Refreshes every ``refresh_interval`` lines. On cancellation the buffer
        is left intact, ``cancelled`` is set and CancelledError propagates.
        """
        try:
            async for line in lines:
                if self._cancelled:
                    break
                self.on_line(line)
                # Let other tasks (and the cancelling caller) run between lines
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.cancel()
            raise
        except Exception as e:
            self.on_error(e)
            return self.refresh()

        if self._cancelled:
            return self.refresh()
        self._complete = True
        return self.refresh()

    def refresh(self, preserve_expanded: bool = True) -> SessionSnapshot:
        """Rebuild index, tree and side tables from the buffer."""
        if preserve_expanded and self._last_snapshot is not None:
            self._expanded_ids = collect_expanded_ids(self._last_snapshot.root)

        messages = consolidate(self._raw_messages)
        index = build_index(messages)
        session_info = extract_session_info(messages)
        root = TreeBuilder(self.config, self.classifier).build(
            messages,
            session_info=session_info,
            index=index,
            enrichment=self.enrichment,
        )
        if preserve_expanded and self._expanded_ids is not None:
            apply_expanded_ids(root, self._expanded_ids | {root.id})

        link_mismatches = [
            ParseError(ErrorKind.LINK_MISMATCH, f"tool_result references unknown tool_use {tool_use_id}")
            for tool_use_id in index.orphan_results()
        ]

        snapshot = SessionSnapshot(
            root=root,
            messages=messages,
            index=index,
            classifications=collect_classifications(root),
            session_info=session_info,
            result_info=extract_result_info(messages),
            errors=list(self._errors),
            link_mismatches=link_mismatches,
            stream_errors=list(self._stream_errors),
            complete=self._complete,
            cancelled=self._cancelled,
        )
        self._last_snapshot = snapshot
        logger.debug(
            "Refreshed tree: %d messages, %d errors, %d nodes",
            len(messages),
            len(self._errors),
            sum(1 for _ in root.walk()),
        )
        if self.on_refresh:
            self.on_refresh(snapshot)
        return snapshot
