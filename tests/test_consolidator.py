"""Tests for streamed message consolidation."""

import copy

from cc_tree.consolidator import Consolidator, consolidate
from cc_tree.models import AssistantMessage, TextBlock, UserMessage
from cc_tree.parser import parse_line, parse_lines
from tests.fixtures.transcripts import (
    assistant,
    line,
    sample_session_lines,
    text_block,
    tool_result,
    tool_use_block,
    user_text,
)


class TestConsolidate:
    def test_merges_fragments_in_order(self):
        messages, _ = parse_lines(
            [
                line(assistant("m1", [text_block("Hello")])),
                line(assistant("m1", [text_block(" world")])),
            ]
        )
        result = consolidate(messages)
        assert len(result) == 1
        merged = result[0]
        assert isinstance(merged, AssistantMessage)
        assert merged.content_blocks == [TextBlock("Hello"), TextBlock(" world")]
        assert merged.fragments == 2

    def test_interleaved_user_message_keeps_positions(self):
        consolidator = Consolidator()
        consolidator.add(parse_line(line(assistant("m1", [text_block("a")])))[0])
        consolidator.add(parse_line(line(user_text("interrupt")))[0])
        merged = consolidator.add(parse_line(line(assistant("m1", [text_block("b")])))[0])
        assert isinstance(merged, AssistantMessage)
        assert [type(m) for m in consolidator.messages] == [AssistantMessage, UserMessage]
        assert consolidator.messages[0].content_blocks == [TextBlock("a"), TextBlock("b")]

    def test_identical_fragments_not_deduplicated(self):
        messages, _ = parse_lines(
            [
                line(assistant("m1", [text_block("same")])),
                line(assistant("m1", [text_block("same")])),
            ]
        )
        assert len(consolidate(messages)[0].content_blocks) == 2

    def test_keeps_first_position(self):
        messages, _ = parse_lines(
            [
                line(assistant("m1", [text_block("thinking about it")])),
                line(user_text("interjection")),
                line(assistant("m1", [tool_use_block("t1", "Bash", {"command": "ls"})])),
            ]
        )
        result = consolidate(messages)
        assert len(result) == 2
        assert isinstance(result[0], AssistantMessage)
        assert isinstance(result[1], UserMessage)
        assert [t.id for t in result[0].tool_uses] == ["t1"]

    def test_first_fragment_metadata_wins(self):
        messages, _ = parse_lines(
            [
                line(assistant("m1", [text_block("a")], uuid="first")),
                line(assistant("m1", [text_block("b")], uuid="second")),
            ]
        )
        assert consolidate(messages)[0].uuid == "first"

    def test_messages_without_id_untouched(self):
        messages, _ = parse_lines(
            [
                line({"type": "assistant", "message": {"content": [text_block("a")]}}),
                line({"type": "assistant", "message": {"content": [text_block("b")]}}),
            ]
        )
        result = consolidate(messages)
        assert len(result) == 2
        assert result[0] is messages[0]

    def test_does_not_mutate_input(self):
        messages, _ = parse_lines(
            [
                line(assistant("m1", [text_block("Hello")])),
                line(assistant("m1", [text_block(" world")])),
            ]
        )
        before = [copy.deepcopy(m.raw) for m in messages]
        consolidate(messages)
        assert [m.raw for m in messages] == before

    def test_empty(self):
        assert consolidate([]) == []


class TestConsolidator:
    def test_incremental_matches_batch(self):
        messages, _ = parse_lines(sample_session_lines())
        consolidator = Consolidator()
        for message in messages:
            consolidator.add(message)
        assert consolidator.messages == consolidate(messages)
        assert len(consolidator) == len(consolidate(messages))

    def test_earlier_snapshot_unchanged(self):
        consolidator = Consolidator()
        consolidator.add(parse_line(line(assistant("m1", [text_block("Hello")])))[0])
        snapshot = consolidator.messages
        consolidator.add(parse_line(line(assistant("m1", [text_block(" world")])))[0])
        assert len(snapshot[0].content_blocks) == 1
        assert len(consolidator.messages[0].content_blocks) == 2

    def test_add_returns_merged_message(self):
        consolidator = Consolidator()
        consolidator.add(parse_line(line(assistant("m1", [text_block("a")])))[0])
        merged = consolidator.add(parse_line(line(assistant("m1", [text_block("b")])))[0])
        assert merged.fragments == 2


class TestParityLaw:
    def test_batch_equals_line_by_line(self):
        lines = sample_session_lines() + [
            "not json",
            line(assistant("m3", [text_block("part 1")])),
            line(tool_result("t9", "orphan output")),
            line(assistant("m3", [text_block("part 2")])),
        ]

        batch = consolidate(parse_lines(lines).messages)

        buffer = []
        for raw in lines:
            message, _ = parse_line(raw)
            if message is not None:
                buffer.append(message)
        streamed = consolidate(buffer)

        assert streamed == batch
        assert [type(m) for m in streamed] == [type(m) for m in batch]
