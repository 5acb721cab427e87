"""Tests for the renderer module."""

import json
from pathlib import Path

import pytest

from bw_flow.events import load_events
from bw_flow.models import (
    Activity,
    AssistantMessage,
    ChatState,
    MediaBlock,
    TaskStatus,
    TextBlock,
    ToolCallBlock,
    UserMessage,
)
from bw_flow.reducer import fold
from bw_flow.renderer import (
    block_to_dict,
    compute_metadata,
    render_json,
    summary_lines,
    transcript_to_dict,
    truncate,
)


@pytest.fixture
def simple_state(simple_events: Path) -> ChatState:
    return fold(load_events(simple_events))


@pytest.fixture
def interleaved_state(interleaved_events: Path) -> ChatState:
    return fold(load_events(interleaved_events))


class TestTruncate:
    def test_short_text_unchanged(self) -> None:
        assert truncate("hello", 10) == "hello"

    def test_long_text_truncated(self) -> None:
        assert truncate("hello world", 5) == "hello..."

    def test_non_string(self) -> None:
        assert truncate(12345, 3) == "123..."


class TestBlockToDict:
    def test_text(self) -> None:
        data = block_to_dict(TextBlock(content="hi", is_streaming=True))
        assert data == {"type": "text", "content": "hi", "is_streaming": True}

    def test_tool_call(self) -> None:
        data = block_to_dict(ToolCallBlock(task_id="t1", tool="local::grep", tool_name="grep"))
        assert data["type"] == "tool_call"
        assert data["tool_name"] == "grep"
        assert data["success"] is True

    def test_media(self) -> None:
        data = block_to_dict(MediaBlock(ref="abc", start_at=30))
        assert data["kind"] == "youtube"
        assert data["start_at"] == 30


class TestTranscriptToDict:
    def test_simple(self, simple_state: ChatState) -> None:
        data = transcript_to_dict(simple_state)
        assert data["active_session_id"] == "s1"
        assert [s["id"] for s in data["sessions"]] == ["s1"]
        assert data["auto_sessions"] == []

        user, assistant = data["messages"]
        assert user["role"] == "user"
        assert user["text"] == "Find the failing test"
        assert assistant["status"] == "completed"
        assert assistant["activity"] == "completed"
        assert [b["type"] for b in assistant["blocks"]] == ["thinking", "text", "tool_call", "text"]
        assert assistant["checkpoints"][0]["commit_hash"] == "abc123"
        assert assistant["context_usage"]["tokens_used"] == 1200
        assert assistant["followup_question"] is None

    def test_is_json_serializable(self, interleaved_state: ChatState) -> None:
        data = transcript_to_dict(interleaved_state)
        json.dumps(data)
        failed = [m for m in data["messages"] if m["status"] == "failed"]
        assert failed[0]["error"] == "timeout"
        assert failed[0]["followup_question"]["question_id"] == "q1"


class TestMetadata:
    def test_counts(self, interleaved_state: ChatState, interleaved_events: Path) -> None:
        meta = compute_metadata(interleaved_state, interleaved_events)
        assert meta == {
            "source": "interleaved.jsonl",
            "total_messages": 2,
            "total_tasks": 2,
            "streaming_tasks": 0,
            "failed_tasks": 1,
            "tool_calls": 0,
        }

    def test_render_json_puts_metadata_first(
        self, simple_state: ChatState, simple_events: Path
    ) -> None:
        output = render_json(simple_state, simple_events)
        data = json.loads(output)
        assert list(data)[0] == "metadata"
        assert data["metadata"]["tool_calls"] == 1
        assert "\n" in output

    def test_render_json_compact(self, simple_state: ChatState, simple_events: Path) -> None:
        output = render_json(simple_state, simple_events, compact=True)
        assert "\n" not in output
        assert json.loads(output)["metadata"]["total_messages"] == 2


class TestSummaryLines:
    def test_simple(self, simple_state: ChatState) -> None:
        lines = summary_lines(simple_state)
        assert lines == [
            "user: Find the failing test",
            "assistant [t1] completed (Done), 1 tool calls: "
            "Let me search.Found it in tests/test_app.py.",
        ]

    def test_falls_back_to_error_then_result(self) -> None:
        state = ChatState(
            messages=(
                AssistantMessage(
                    id="a",
                    task_id="t1",
                    status=TaskStatus.FAILED,
                    activity=Activity.ERROR,
                    error="boom",
                ),
                AssistantMessage(
                    id="b",
                    task_id="t2",
                    status=TaskStatus.COMPLETED,
                    activity=Activity.COMPLETED,
                    result=42,
                ),
                AssistantMessage(id="c", task_id="t3"),
            )
        )
        assert summary_lines(state) == [
            "assistant [t1] failed (Error), 0 tool calls: boom",
            "assistant [t2] completed (Done), 0 tool calls: 42",
            "assistant [t3] queued (queued), 0 tool calls",
        ]

    def test_truncates_preview(self) -> None:
        state = ChatState(messages=(UserMessage(id="u", text="x" * 50),))
        assert summary_lines(state, max_len=10) == ["user: " + "x" * 10 + "..."]
