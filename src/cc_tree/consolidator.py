"""Merge streamed assistant fragments that share a message id.

Claude Code writes one JSONL line per content block of a streamed response;
every line repeats the same ``message.id``. Consolidation folds them back into
one logical message whose content is the concatenation of all fragments.
"""

import copy
from typing import Iterable

from .models import AssistantMessage, Message, raw_content_blocks


class Consolidator:
    """Incremental consolidation.

    Feeding messages one at a time yields exactly what ``consolidate`` yields
    for the same sequence. Merges are copy-on-write: neither input messages nor
    lists previously returned by ``messages`` are changed by later ``add``
    calls.
    """

    def __init__(self):
        self._messages: list[Message] = []
        self._positions: dict[str, int] = {}

    def add(self, message: Message) -> Message:
        """Add a message; returns the consolidated message it ended up in."""
        if not isinstance(message, AssistantMessage) or not message.message_id:
            self._messages.append(message)
            return message

        message_id = message.message_id
        position = self._positions.get(message_id)
        if position is None:
            first = AssistantMessage(
                raw=_with_content(message.raw, copy.deepcopy(raw_content_blocks(message.raw))),
                fragments=message.fragments,
            )
            self._positions[message_id] = len(self._messages)
            self._messages.append(first)
            return first

        existing = self._messages[position]
        merged_content = raw_content_blocks(existing.raw) + copy.deepcopy(
            raw_content_blocks(message.raw)
        )
        merged = AssistantMessage(
            raw=_with_content(existing.raw, merged_content),
            fragments=existing.fragments + message.fragments,
        )
        self._messages[position] = merged
        return merged

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.add(message)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


def _with_content(raw: dict, content: list) -> dict:
    """Copy of ``raw`` with ``message.content`` replaced."""
    message_data = raw.get("message")
    message_data = dict(message_data) if isinstance(message_data, dict) else {}
    message_data["content"] = content
    return {**raw, "message": message_data}


def consolidate(messages: Iterable[Message]) -> list[Message]:
    """Consolidate a whole batch of messages."""
    consolidator = Consolidator()
    consolidator.extend(messages)
    return consolidator.messages
