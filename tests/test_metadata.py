"""Tests for session metadata extraction."""

from cc_tree.consolidator import consolidate
from cc_tree.metadata import extract_result_info, extract_session_info, extract_title
from cc_tree.parser import parse_lines
from tests.fixtures.transcripts import (
    SESSION_ID,
    assistant,
    line,
    sample_session_lines,
    text_block,
    tool_result,
    user_text,
)


def messages_for(lines):
    return consolidate(parse_lines(lines).messages)


class TestExtractTitle:
    def test_plain_text(self):
        assert extract_title("Fix the login bug\nDetails follow") == "Fix the login bug"

    def test_command_args(self):
        text = "<command-name>/review</command-name>\n<command-args>check auth.py</command-args>"
        assert extract_title(text) == "check auth.py"

    def test_command_without_args(self):
        assert extract_title("<command-name>/clear</command-name>") == "/clear"

    def test_truncated(self):
        title = extract_title("x" * 200)
        assert len(title) == 80
        assert title.endswith("...")

    def test_empty(self):
        assert extract_title(None) is None
        assert extract_title("   ") is None


class TestExtractSessionInfo:
    def test_sample_session(self):
        info = extract_session_info(messages_for(sample_session_lines()))
        assert info.session_id == SESSION_ID
        assert info.model == "claude-sonnet-4-5"
        assert info.cwd == "/home/dev/project"
        assert info.tools == ["Bash", "Read", "Write"]
        assert info.title == "List the files please"
        assert info.started_at == "2025-01-01T10:00:00Z"
        assert info.ended_at == "2025-01-01T10:00:04Z"

    def test_without_init(self):
        info = extract_session_info(
            messages_for(
                [
                    line(user_text("hello", cwd="/repo", gitBranch="feature", version="1.0.80")),
                    line(assistant("m1", [text_block("hi")])),
                ]
            )
        )
        assert info.session_id == SESSION_ID
        assert info.cwd == "/repo"
        assert info.git_branch == "feature"
        assert info.version == "1.0.80"
        assert info.model == "claude-sonnet-4-5"

    def test_title_skips_tool_results_and_meta(self):
        info = extract_session_info(
            messages_for(
                [
                    line(tool_result("t1", "output")),
                    line(user_text("Caveat: internal", isMeta=True)),
                    line(user_text("Real question")),
                ]
            )
        )
        assert info.title == "Real question"

    def test_summary(self):
        info = extract_session_info(
            messages_for([line({"type": "summary", "summary": "Refactor parser", "leafUuid": "x"})])
        )
        assert info.summary == "Refactor parser"

    def test_non_string_timestamps_ignored(self):
        info = extract_session_info(
            messages_for(
                [
                    line(user_text("first", timestamp="2025-01-01T00:00:00Z")),
                    line(user_text("second", timestamp=1735689600)),
                    line(user_text("third", timestamp="2025-01-01T00:05:00Z")),
                ]
            )
        )
        assert info.started_at == "2025-01-01T00:00:00Z"
        assert info.ended_at == "2025-01-01T00:05:00Z"

    def test_empty(self):
        info = extract_session_info([])
        assert info.session_id is None
        assert info.message_count == 0
        assert info.to_dict()["tools"] == []


class TestExtractResultInfo:
    def test_result(self):
        result = extract_result_info(messages_for(sample_session_lines()))
        assert result.success
        assert result.cost_usd == 0.0123
        assert result.duration_ms == 4200
        assert result.num_turns == 3

    def test_no_result(self):
        assert extract_result_info(messages_for([line(user_text("hi"))])) is None
