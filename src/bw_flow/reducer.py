"""Fold task events into the transcript.

Every transition is a total function ``(ChatState, event) -> ChatState``.
Events that cannot be applied (unknown task id, no in-flight message for
an overlay, block content for a finished task) return the state unchanged.
Task events locate their message by scanning for the most recent assistant
message carrying the task id, never by transcript position.
"""

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any, assert_never

from . import sessions
from .activity import REASONING_MARKER, infer_activity, status_to_activity
from .events import (
    ApprovalCleared,
    ApprovalRequested,
    CheckpointCreated,
    ContextUsageEvent,
    Event,
    FollowupCleared,
    FollowupQuestionAsked,
    HistoryLoaded,
    MediaPlay,
    SessionActivated,
    SessionCreated,
    SessionRemoved,
    SessionRenamed,
    SessionsListed,
    StatusEvent,
    StreamChunk,
    TaskRecord,
    TaskSubmitted,
    ToolCallInfo,
    UserPrompt,
)
from .models import (
    IN_FLIGHT_STATUSES,
    TERMINAL_STATUSES,
    Activity,
    ApprovalRequest,
    AssistantMessage,
    ChatState,
    CheckpointInfo,
    ContentBlock,
    ContextUsage,
    FollowupQuestion,
    MediaBlock,
    Message,
    TaskListItem,
    TaskStatus,
    TextBlock,
    ThinkingBlock,
    ToolCallBlock,
    UserMessage,
)

logger = logging.getLogger(__name__)

HISTORY_STATUS = {
    "pending": TaskStatus.QUEUED,
    "planning": TaskStatus.PLANNING,
    "in_progress": TaskStatus.EXECUTING,
    "completed": TaskStatus.COMPLETED,
    "failed": TaskStatus.FAILED,
    "cancelled": TaskStatus.CANCELLED,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


# ─── Lookups ───


def find_assistant_index(messages: tuple[Message, ...], task_id: str) -> int:
    """Index of the most recent assistant message for ``task_id``, or -1."""
    for i in range(len(messages) - 1, -1, -1):
        msg = messages[i]
        if isinstance(msg, AssistantMessage) and msg.task_id == task_id:
            return i
    return -1


def find_assistant(state: ChatState, task_id: str) -> AssistantMessage | None:
    idx = find_assistant_index(state.messages, task_id)
    return state.messages[idx] if idx != -1 else None


def find_in_flight_index(messages: tuple[Message, ...]) -> int:
    """Index of the most recently appended planning/executing assistant message, or -1."""
    for i in range(len(messages) - 1, -1, -1):
        msg = messages[i]
        if isinstance(msg, AssistantMessage) and msg.status in IN_FLIGHT_STATUSES:
            return i
    return -1


def _replace_at(state: ChatState, idx: int, msg: Message) -> ChatState:
    if state.messages[idx] is msg:
        return state
    messages = (*state.messages[:idx], msg, *state.messages[idx + 1 :])
    return state.model_copy(update={"messages": messages})


def _update_assistant(
    state: ChatState,
    task_id: str,
    updater: Callable[[AssistantMessage], AssistantMessage],
) -> ChatState:
    idx = find_assistant_index(state.messages, task_id)
    if idx == -1:
        logger.debug("Dropping event for unknown task %s", task_id)
        return state
    return _replace_at(state, idx, updater(state.messages[idx]))


# ─── Block helpers ───


def _last_streaming(blocks: list[ContentBlock], block_cls: type) -> int:
    for i in range(len(blocks) - 1, -1, -1):
        block = blocks[i]
        if isinstance(block, block_cls) and block.is_streaming:
            return i
    return -1


def _freeze_all(blocks: tuple[ContentBlock, ...]) -> tuple[ContentBlock, ...]:
    """Clear the streaming flag on every text and thinking block."""
    if not any(isinstance(b, (TextBlock, ThinkingBlock)) and b.is_streaming for b in blocks):
        return blocks
    return tuple(
        b.model_copy(update={"is_streaming": False})
        if isinstance(b, (TextBlock, ThinkingBlock)) and b.is_streaming
        else b
        for b in blocks
    )


def _append_to(blocks: list[ContentBlock], idx: int, text: str) -> None:
    blocks[idx] = blocks[idx].model_copy(update={"content": blocks[idx].content + text})


def _strip_marker(chunk: str, marker: str) -> str:
    if marker and chunk.startswith(marker):
        return chunk[len(marker) :].lstrip()
    return chunk


def _is_reasoning_chunk(msg: AssistantMessage, event: StreamChunk, marker: str) -> bool:
    if marker and event.chunk.startswith(marker):
        return True
    # An unflagged, unmarked chunk continues a reasoning trace that is still open.
    # Chunks that say isFirst=false explicitly are answer text.
    last = msg.blocks[-1] if msg.blocks else None
    return event.is_first is None and isinstance(last, ThinkingBlock) and last.is_streaming


# ─── Task events ───


def apply_status(
    state: ChatState, event: StatusEvent, marker: str = REASONING_MARKER
) -> ChatState:
    """Apply a status transition. Never touches block content."""

    def update(msg: AssistantMessage) -> AssistantMessage:
        if msg.is_terminal:
            if event.status not in TERMINAL_STATUSES:
                logger.debug(
                    "Ignoring %s status for finished task %s", event.status.value, msg.task_id
                )
                return msg
            changes: dict[str, Any] = {}
            if not _is_present(msg.result) and _is_present(event.result):
                changes["result"] = event.result
            if not _is_present(msg.error) and _is_present(event.error):
                changes["error"] = event.error
            return msg.model_copy(update=changes) if changes else msg

        if event.status == TaskStatus.COMPLETED:
            activity = Activity.COMPLETED
        elif event.status == TaskStatus.FAILED:
            activity = Activity.ERROR
        elif event.current_step:
            activity = infer_activity(event.current_step, marker)
        else:
            activity = status_to_activity(event.status)

        task_list = event.task_list if event.task_list is not None else msg.task_list
        if event.task_list_update is not None and task_list is not None:
            change = event.task_list_update
            task_list = _update_task_list(task_list, change.item_id, change.status)

        terminal = event.status in TERMINAL_STATUSES
        return msg.model_copy(
            update={
                "status": event.status,
                "activity": activity,
                "result": event.result if _is_present(event.result) else msg.result,
                "error": event.error if _is_present(event.error) else msg.error,
                "is_streaming": event.status in IN_FLIGHT_STATUSES,
                "task_list": task_list,
                "blocks": _freeze_all(msg.blocks) if terminal else msg.blocks,
            }
        )

    return _update_assistant(state, event.task_id, update)


def _update_task_list(
    items: tuple[TaskListItem, ...], item_id: str, status: Any
) -> tuple[TaskListItem, ...]:
    return tuple(
        item.model_copy(update={"status": status}) if item.id == item_id else item for item in items
    )


def apply_stream_chunk(
    state: ChatState, event: StreamChunk, marker: str = REASONING_MARKER
) -> ChatState:
    """Append a streamed chunk to the open text or thinking block."""

    def update(msg: AssistantMessage) -> AssistantMessage:
        if msg.is_terminal:
            logger.debug("Dropping stream chunk for finished task %s", msg.task_id)
            return msg

        if event.is_done:
            blocks = _freeze_all(msg.blocks)
            if blocks is msg.blocks and not msg.is_streaming:
                return msg
            return msg.model_copy(update={"blocks": blocks, "is_streaming": False})

        blocks = list(msg.blocks)
        if _is_reasoning_chunk(msg, event, marker):
            content = _strip_marker(event.chunk, marker)
            idx = _last_streaming(blocks, ThinkingBlock)
            if idx != -1:
                _append_to(blocks, idx, content)
            else:
                blocks.append(ThinkingBlock(content=content, is_streaming=True))
            return msg.model_copy(
                update={
                    "blocks": tuple(blocks),
                    "is_streaming": True,
                    "activity": Activity.REASONING,
                }
            )

        idx = _last_streaming(blocks, TextBlock)
        if idx != -1:
            _append_to(blocks, idx, event.chunk)
        else:
            blocks.append(TextBlock(content=event.chunk, is_streaming=True))
        return msg.model_copy(
            update={
                "blocks": tuple(blocks),
                "plain_text": msg.plain_text + event.chunk,
                "is_streaming": True,
                "activity": Activity.THINKING,
            }
        )

    return _update_assistant(state, event.task_id, update)


def apply_tool_call(
    state: ChatState, event: ToolCallInfo, marker: str = REASONING_MARKER
) -> ChatState:
    """Pause narration and record a tool invocation."""

    def update(msg: AssistantMessage) -> AssistantMessage:
        if msg.is_terminal:
            logger.debug("Dropping tool call for finished task %s", msg.task_id)
            return msg
        blocks = list(msg.blocks)
        idx = _last_streaming(blocks, TextBlock)
        if idx != -1:
            blocks[idx] = blocks[idx].model_copy(update={"is_streaming": False})
        blocks.append(
            ToolCallBlock(
                task_id=event.task_id,
                agent_type=event.agent_type,
                step=event.step,
                tool=event.tool,
                tool_name=event.tool_name,
                args=event.args,
                success=event.success,
                summary=event.summary,
                duration=event.duration,
                result_preview=event.result_preview,
                timestamp=event.timestamp if event.timestamp is not None else _now_ms(),
            )
        )
        return msg.model_copy(
            update={"blocks": tuple(blocks), "activity": infer_activity(event.tool_name, marker)}
        )

    return _update_assistant(state, event.task_id, update)


def apply_checkpoint(state: ChatState, event: CheckpointCreated) -> ChatState:
    checkpoint = CheckpointInfo(**event.model_dump(exclude={"kind"}))
    return _update_assistant(
        state,
        event.task_id,
        lambda msg: msg.model_copy(update={"checkpoints": (*msg.checkpoints, checkpoint)}),
    )


def apply_context_usage(state: ChatState, event: ContextUsageEvent) -> ChatState:
    usage = ContextUsage(**event.model_dump(exclude={"kind"}))
    return _update_assistant(
        state, event.task_id, lambda msg: msg.model_copy(update={"context_usage": usage})
    )


def apply_media_play(state: ChatState, event: MediaPlay) -> ChatState:
    """Embed media in the task's block list; streaming state is left alone."""

    def update(msg: AssistantMessage) -> AssistantMessage:
        if msg.is_terminal:
            logger.debug("Dropping media for finished task %s", msg.task_id)
            return msg
        block = MediaBlock(
            kind=event.media_kind,
            ref=event.ref,
            title=event.title,
            playlist_id=event.playlist_id,
            start_at=event.start_at,
        )
        return msg.model_copy(update={"blocks": (*msg.blocks, block)})

    return _update_assistant(state, event.task_id, update)


# ─── Overlays ───
#
# Follow-up questions and approval requests go to the latest in-flight
# message, whatever task id the event names.


def _attach_overlay(state: ChatState, field: str, value: Any) -> ChatState:
    idx = find_in_flight_index(state.messages)
    if idx == -1:
        logger.debug("Dropping %s: no in-flight message", field)
        return state
    return _replace_at(state, idx, state.messages[idx].model_copy(update={field: value}))


def _clear_overlay(state: ChatState, field: str, id_field: str, overlay_id: str) -> ChatState:
    changed = False
    messages = []
    for msg in state.messages:
        overlay = getattr(msg, field, None)
        if overlay is not None and getattr(overlay, id_field) == overlay_id:
            msg = msg.model_copy(update={field: None})
            changed = True
        messages.append(msg)
    if not changed:
        return state
    return state.model_copy(update={"messages": tuple(messages)})


def attach_followup_question(state: ChatState, event: FollowupQuestionAsked) -> ChatState:
    question = FollowupQuestion(**event.model_dump(exclude={"kind"}))
    return _attach_overlay(state, "followup_question", question)


def clear_followup_question(state: ChatState, question_id: str) -> ChatState:
    return _clear_overlay(state, "followup_question", "question_id", question_id)


def attach_approval_request(state: ChatState, event: ApprovalRequested) -> ChatState:
    request = ApprovalRequest(**event.model_dump(exclude={"kind"}))
    return _attach_overlay(state, "approval_request", request)


def clear_approval_request(state: ChatState, approval_id: str) -> ChatState:
    return _clear_overlay(state, "approval_request", "approval_id", approval_id)


# ─── Transcript ───


def add_user_message(state: ChatState, event: UserPrompt) -> ChatState:
    msg = UserMessage(
        id=event.message_id or _new_id(),
        session_id=event.session_id or state.active_session_id,
        text=event.text,
        created_at=event.created_at if event.created_at is not None else _now_ms(),
    )
    return state.model_copy(update={"messages": (*state.messages, msg)})


def open_task(state: ChatState, event: TaskSubmitted) -> ChatState:
    """Append the queued assistant message that will collect a task's events."""
    if find_assistant_index(state.messages, event.task_id) != -1:
        logger.debug("Task id %s already has a message", event.task_id)
        return state
    msg = AssistantMessage(
        id=event.message_id or _new_id(),
        task_id=event.task_id,
        session_id=event.session_id or state.active_session_id,
        created_at=event.created_at if event.created_at is not None else _now_ms(),
    )
    return state.model_copy(update={"messages": (*state.messages, msg)})


def messages_from_history(tasks: Iterable[TaskRecord], session_id: str) -> list[Message]:
    """Turn stored task records (newest first) into a user/assistant transcript."""
    messages: list[Message] = []
    for task in reversed(tuple(tasks)):
        status = HISTORY_STATUS[task.status]
        messages.append(
            UserMessage(
                id=f"{task.id}-prompt",
                session_id=session_id,
                text=task.prompt,
                created_at=task.created_at,
            )
        )
        messages.append(
            AssistantMessage(
                id=task.id,
                task_id=task.id,
                session_id=session_id,
                status=status,
                activity=status_to_activity(status),
                result=task.result,
                error=task.error,
                is_streaming=status in IN_FLIGHT_STATUSES,
                created_at=task.created_at,
            )
        )
    return messages


def _pending_live_messages(messages: tuple[Message, ...], known: set[str]) -> list[Message]:
    """Live messages the history does not cover yet, with the prompts that opened them."""
    kept: list[Message] = []
    for i, msg in enumerate(messages):
        if isinstance(msg, AssistantMessage):
            if msg.task_id not in known:
                kept.append(msg)
            continue
        nxt = messages[i + 1] if i + 1 < len(messages) else None
        # Drop a prompt only when the history already holds the task it opened.
        if not (isinstance(nxt, AssistantMessage) and nxt.task_id in known):
            kept.append(msg)
    return kept


def apply_history(state: ChatState, event: HistoryLoaded) -> ChatState:
    if event.session_id != state.active_session_id:
        logger.debug("Dropping history for inactive session %s", event.session_id)
        return state
    history = messages_from_history(event.tasks, event.session_id)
    known = {task.id for task in event.tasks}
    pending = _pending_live_messages(state.messages, known)
    return state.model_copy(update={"messages": (*history, *pending), "loaded": True})


# ─── Dispatch ───


def reduce(state: ChatState, event: Event, *, marker: str = REASONING_MARKER) -> ChatState:
    """Apply one event."""
    match event:
        case StatusEvent():
            return apply_status(state, event, marker)
        case StreamChunk():
            return apply_stream_chunk(state, event, marker)
        case ToolCallInfo():
            return apply_tool_call(state, event, marker)
        case CheckpointCreated():
            return apply_checkpoint(state, event)
        case ContextUsageEvent():
            return apply_context_usage(state, event)
        case MediaPlay():
            return apply_media_play(state, event)
        case FollowupQuestionAsked():
            return attach_followup_question(state, event)
        case FollowupCleared():
            return clear_followup_question(state, event.question_id)
        case ApprovalRequested():
            return attach_approval_request(state, event)
        case ApprovalCleared():
            return clear_approval_request(state, event.approval_id)
        case UserPrompt():
            return add_user_message(state, event)
        case TaskSubmitted():
            return open_task(state, event)
        case HistoryLoaded():
            return apply_history(state, event)
        case SessionCreated():
            return sessions.add_session(state, event.session)
        case SessionsListed():
            return sessions.set_sessions(state, event.session_kind, event.sessions)
        case SessionRemoved():
            return sessions.remove_session(state, event.session_id)
        case SessionRenamed():
            return sessions.rename_session(state, event.session_id, event.title, event.updated_at)
        case SessionActivated():
            return sessions.set_active(state, event.session_id)
        case _:
            assert_never(event)


def fold(
    events: Iterable[Event], state: ChatState | None = None, *, marker: str = REASONING_MARKER
) -> ChatState:
    """Reduce a sequence of events, in order, starting from ``state``."""
    state = state if state is not None else ChatState(loaded=True)
    for event in events:
        state = reduce(state, event, marker=marker)
    return state
