"""JSON and text renderings of a reduced transcript."""

import json
from pathlib import Path
from typing import Any, assert_never

from .activity import activity_label
from .models import (
    AssistantMessage,
    ChatState,
    ContentBlock,
    MediaBlock,
    Message,
    Session,
    TaskStatus,
    TextBlock,
    ThinkingBlock,
    ToolCallBlock,
    UserMessage,
)


def truncate(text: str, max_len: int = 300) -> str:
    """Truncate text with ellipsis."""
    text = str(text)
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def block_to_dict(block: ContentBlock) -> dict:
    match block:
        case TextBlock() | ThinkingBlock():
            return {
                "type": block.type,
                "content": block.content,
                "is_streaming": block.is_streaming,
            }
        case ToolCallBlock():
            return {
                "type": block.type,
                "tool": block.tool,
                "tool_name": block.tool_name,
                "agent_type": block.agent_type,
                "step": block.step,
                "args": block.args,
                "success": block.success,
                "summary": block.summary,
                "duration": block.duration,
                "result_preview": block.result_preview,
                "timestamp": block.timestamp,
            }
        case MediaBlock():
            return {
                "type": block.type,
                "kind": block.kind,
                "ref": block.ref,
                "title": block.title,
                "playlist_id": block.playlist_id,
                "start_at": block.start_at,
            }
        case _:
            assert_never(block)


def message_to_dict(msg: Message) -> dict:
    if isinstance(msg, UserMessage):
        return {
            "role": "user",
            "id": msg.id,
            "session_id": msg.session_id,
            "text": msg.text,
            "created_at": msg.created_at,
        }
    return {
        "role": "assistant",
        "id": msg.id,
        "task_id": msg.task_id,
        "session_id": msg.session_id,
        "status": msg.status.value,
        "activity": msg.activity.value,
        "is_streaming": msg.is_streaming,
        "blocks": [block_to_dict(b) for b in msg.blocks],
        "plain_text": msg.plain_text,
        "result": msg.result,
        "error": msg.error,
        "task_list": [item.model_dump(mode="json") for item in msg.task_list]
        if msg.task_list is not None
        else None,
        "followup_question": msg.followup_question.model_dump(mode="json")
        if msg.followup_question
        else None,
        "approval_request": msg.approval_request.model_dump(mode="json")
        if msg.approval_request
        else None,
        "checkpoints": [c.model_dump(mode="json") for c in msg.checkpoints],
        "context_usage": msg.context_usage.model_dump(mode="json") if msg.context_usage else None,
        "created_at": msg.created_at,
    }


def _session_to_dict(session: Session) -> dict:
    return {
        "id": session.id,
        "title": session.title,
        "kind": session.kind.value,
        "created_at": session.created_at,
        "updated_at": session.updated_at,
    }


def transcript_to_dict(state: ChatState) -> dict:
    """Convert the state to plain dicts for JSON serialization."""
    return {
        "active_session_id": state.active_session_id,
        "sessions": [_session_to_dict(s) for s in state.sessions],
        "auto_sessions": [_session_to_dict(s) for s in state.auto_sessions],
        "messages": [message_to_dict(m) for m in state.messages],
    }


def compute_metadata(state: ChatState, events_path: Path) -> dict[str, Any]:
    """Compute summary metadata for the transcript."""
    assistant = [m for m in state.messages if isinstance(m, AssistantMessage)]
    return {
        "source": events_path.name,
        "total_messages": len(state.messages),
        "total_tasks": len(assistant),
        "streaming_tasks": sum(1 for m in assistant if m.is_streaming),
        "failed_tasks": sum(1 for m in assistant if m.status == TaskStatus.FAILED),
        "tool_calls": sum(1 for m in assistant for b in m.blocks if isinstance(b, ToolCallBlock)),
    }


def render_json(state: ChatState, events_path: Path, compact: bool = False) -> str:
    """Render the transcript as a JSON string."""
    data = transcript_to_dict(state)
    metadata = compute_metadata(state, events_path)

    # Put metadata first in output
    ordered = {"metadata": metadata, **data}

    return json.dumps(ordered, indent=None if compact else 2, ensure_ascii=False, default=str)


def summary_lines(state: ChatState, max_len: int = 300) -> list[str]:
    """One line per message: who, state, and a preview of what was said."""
    lines = []
    for msg in state.messages:
        if isinstance(msg, UserMessage):
            lines.append(f"user: {truncate(msg.text, max_len)}")
            continue
        label = activity_label(msg.activity) or msg.status.value
        tools = sum(1 for b in msg.blocks if isinstance(b, ToolCallBlock))
        text = msg.plain_text or msg.error or (str(msg.result) if msg.result is not None else "")
        line = f"assistant [{msg.task_id}] {msg.status.value} ({label}), {tools} tool calls"
        if text:
            line += f": {truncate(text, max_len)}"
        lines.append(line)
    return lines
