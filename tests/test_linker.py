"""Tests for linking tool uses to tool results."""

import logging

import pytest

from cc_tree.consolidator import consolidate
from cc_tree.linker import LinkedContext, ToolIndex, build_index, link, serialize_tool_input
from cc_tree.models import ToolResult, ToolUse
from cc_tree.parser import parse_lines
from tests.fixtures.transcripts import (
    assistant,
    line,
    text_block,
    tool_result,
    tool_use_block,
    user_text,
)


def index_for(lines):
    return build_index(consolidate(parse_lines(lines).messages))


class TestLink:
    def test_bash_example(self):
        tool_use = ToolUse(id="t1", name="Bash", input={"command": "ls"})
        tool_result_block = ToolResult(tool_use_id="t1", content="file.txt")
        linked = link(tool_use, tool_result_block)
        assert linked.tool_name == "Bash"
        assert linked.input_content == '{"command":"ls"}'
        assert linked.result_content == "file.txt"
        assert linked.is_linked

    def test_result_without_tool_use(self):
        linked = link(None, ToolResult(tool_use_id="gone", content="x", is_error=True))
        assert linked.tool_use_id == "gone"
        assert linked.tool_name is None
        assert linked.input_content is None
        assert linked.is_error
        assert not linked.is_linked

    def test_tool_use_without_result(self):
        linked = link(ToolUse(id="t1", name="Read", input={"file_path": "/a.py"}), None)
        assert linked.result_content is None
        assert linked.result_text == ""
        assert linked.file_path == "/a.py"

    def test_needs_one_side(self):
        with pytest.raises(ValueError):
            link(None, None)

    def test_serialize_keeps_key_order(self):
        assert serialize_tool_input({"b": 1, "a": [1, 2]}) == '{"b":1,"a":[1,2]}'

    def test_linked_context_is_frozen(self):
        linked = LinkedContext("t1", "Bash", "{}", "out")
        with pytest.raises(AttributeError):
            linked.tool_name = "Other"


class TestBuildIndex:
    def test_links_across_unrelated_messages(self):
        lines = [line(assistant("m1", [tool_use_block("t1", "Bash", {"command": "ls"})]))]
        lines += [line(user_text(f"noise {i}")) for i in range(50)]
        lines += [line(assistant(f"x{i}", [text_block("more noise")])) for i in range(50)]
        lines.append(line(tool_result("t1", "file.txt")))

        index = index_for(lines)
        linked = index.link_for("t1")
        assert linked.tool_name == "Bash"
        assert linked.result_content == "file.txt"

    def test_unpacks_as_pair(self):
        tool_uses, tool_results = index_for(
            [
                line(assistant("m1", [tool_use_block("t1", "Read")])),
                line(tool_result("t1", "content")),
            ]
        )
        assert list(tool_uses) == ["t1"]
        assert list(tool_results) == ["t1"]

    def test_orphans_and_pending(self):
        index = index_for(
            [
                line(assistant("m1", [tool_use_block("t1", "Read"), tool_use_block("t2", "Bash")])),
                line(tool_result("t1", "content")),
                line(tool_result("t404", "lost")),
            ]
        )
        assert index.orphan_results() == ["t404"]
        assert index.pending_tool_uses() == ["t2"]
        assert index.link_for("t404").tool_name is None
        assert index.link_for("nothing") is None

    def test_result_before_tool_use(self):
        index = index_for(
            [
                line(tool_result("t1", "early")),
                line(assistant("m1", [tool_use_block("t1", "Bash")])),
            ]
        )
        assert index.link_for("t1").tool_name == "Bash"
        assert index.orphan_results() == []

    def test_duplicate_tool_use_id_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="cc_tree.linker"):
            index = index_for(
                [
                    line(assistant("m1", [tool_use_block("t1", "Read")])),
                    line(assistant("m2", [tool_use_block("t1", "Bash")])),
                ]
            )
        assert index.tool_for("t1").name == "Bash"
        assert any("Duplicate tool_use id t1" in r.message for r in caplog.records)

    def test_duplicate_tool_result_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="cc_tree.linker"):
            index = index_for(
                [
                    line(tool_result("t1", "first")),
                    line(tool_result("t1", "second")),
                ]
            )
        assert index.result_for("t1").content == "second"
        assert any("Duplicate tool_result" in r.message for r in caplog.records)

    def test_empty(self):
        assert build_index([]) == ToolIndex({}, {})
