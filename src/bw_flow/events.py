"""Inbound events consumed by the reducer, and loading them from JSONL logs."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, TypeAdapter, ValidationError

from .models import (
    ApprovalRequest,
    CheckpointInfo,
    ContextUsage,
    FollowupQuestion,
    FrozenModel,
    Session,
    SessionKind,
    TaskListItem,
    TaskListItemStatus,
    TaskStatus,
)

logger = logging.getLogger(__name__)


class EventParseError(ValueError):
    """A record could not be turned into a known event."""


# ─── Task events (correlated by task_id) ───


class TaskListUpdate(FrozenModel):
    item_id: str
    status: TaskListItemStatus


class StatusEvent(FrozenModel):
    kind: Literal["task_update"] = "task_update"
    task_id: str
    status: TaskStatus
    current_step: str | None = None
    progress: float | None = None
    result: Any = None
    error: str | None = None
    task_list: tuple[TaskListItem, ...] | None = None
    task_list_update: TaskListUpdate | None = None


class StreamChunk(FrozenModel):
    kind: Literal["stream_chunk"] = "stream_chunk"
    task_id: str
    chunk: str = ""
    is_first: bool | None = None  # None when the sender omits the flag
    is_done: bool = False
    agent_type: str = ""


class ToolCallInfo(FrozenModel):
    kind: Literal["tool_call"] = "tool_call"
    task_id: str
    agent_type: str
    step: int
    tool: str
    tool_name: str
    success: bool
    args: dict[str, Any] = {}
    summary: str = ""
    duration: float | None = None
    result_preview: str | None = None
    timestamp: int | None = None


class ContextUsageEvent(ContextUsage):
    kind: Literal["context_usage"] = "context_usage"


class CheckpointCreated(CheckpointInfo):
    kind: Literal["checkpoint"] = "checkpoint"


class MediaPlay(FrozenModel):
    kind: Literal["media_play"] = "media_play"
    task_id: str
    ref: str = Field(validation_alias=AliasChoices("ref", "videoId", "video_id"))
    title: str | None = None
    playlist_id: str | None = None
    start_at: int | None = None
    media_kind: str = "youtube"


# ─── Overlay events (not correlated by task_id) ───


class FollowupQuestionAsked(FollowupQuestion):
    kind: Literal["followup_question"] = "followup_question"


class FollowupCleared(FrozenModel):
    kind: Literal["followup_cleared"] = "followup_cleared"
    question_id: str


class ApprovalRequested(ApprovalRequest):
    kind: Literal["approval_request"] = "approval_request"


class ApprovalCleared(FrozenModel):
    kind: Literal["approval_cleared"] = "approval_cleared"
    approval_id: str


# ─── Transcript events ───


class UserPrompt(FrozenModel):
    kind: Literal["user_prompt"] = "user_prompt"
    message_id: str | None = None
    session_id: str | None = None
    text: str
    created_at: int | None = None


class TaskSubmitted(FrozenModel):
    """The orchestrator accepted a prompt; opens the task's assistant message."""

    kind: Literal["task_submitted"] = "task_submitted"
    task_id: str
    session_id: str | None = None
    message_id: str | None = None
    created_at: int | None = None


class TaskRecord(FrozenModel):
    """A task as returned by the external history store."""

    id: str
    prompt: str = ""
    priority: Literal["low", "normal", "high"] = "normal"
    status: Literal["pending", "planning", "in_progress", "completed", "failed", "cancelled"]
    result: Any = None
    error: str | None = None
    created_at: int = 0
    completed_at: int | None = None
    session_id: str | None = None


class HistoryLoaded(FrozenModel):
    kind: Literal["history_loaded"] = "history_loaded"
    session_id: str
    tasks: tuple[TaskRecord, ...] = ()  # newest first


# ─── Session registry events ───


class SessionCreated(FrozenModel):
    kind: Literal["session_created"] = "session_created"
    session: Session


class SessionsListed(FrozenModel):
    kind: Literal["sessions_listed"] = "sessions_listed"
    session_kind: SessionKind = SessionKind.USER
    sessions: tuple[Session, ...] = ()


class SessionRemoved(FrozenModel):
    kind: Literal["session_removed"] = "session_removed"
    session_id: str


class SessionRenamed(FrozenModel):
    kind: Literal["session_renamed"] = "session_renamed"
    session_id: str
    title: str
    updated_at: int | None = None


class SessionActivated(FrozenModel):
    kind: Literal["session_activated"] = "session_activated"
    session_id: str | None = None


Event = Annotated[
    StatusEvent
    | StreamChunk
    | ToolCallInfo
    | ContextUsageEvent
    | CheckpointCreated
    | MediaPlay
    | FollowupQuestionAsked
    | FollowupCleared
    | ApprovalRequested
    | ApprovalCleared
    | UserPrompt
    | TaskSubmitted
    | HistoryLoaded
    | SessionCreated
    | SessionsListed
    | SessionRemoved
    | SessionRenamed
    | SessionActivated,
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(record: dict[str, Any]) -> Event:
    """Validate a raw record (camelCase or snake_case keys) into an event."""
    if not isinstance(record, dict):
        raise EventParseError(f"Event record must be an object, got {type(record).__name__}")
    try:
        return _EVENT_ADAPTER.validate_python(record)
    except ValidationError as e:
        raise EventParseError(f"Invalid {record.get('kind', '<no kind>')!r} event: {e}") from e


def load_events(path: Path) -> list[Event]:
    """Load a JSONL event log, skipping lines that are not valid events."""
    events = []
    with open(path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                events.append(parse_event(json.loads(line)))
            except json.JSONDecodeError as e:
                logger.warning("Skipping malformed JSON at line %d: %s", line_num, e)
            except EventParseError as e:
                logger.warning("Skipping unknown event at line %d: %s", line_num, e)
    return events
