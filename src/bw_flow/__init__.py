"""bw-flow: fold agent task events into render-ready chat transcripts."""

from .activity import activity_label, infer_activity, status_to_activity
from .events import EventParseError, load_events, parse_event
from .listeners import GlobalListeners, InProcessEventBus, install_global_listeners
from .models import (
    Activity,
    AssistantMessage,
    ChatState,
    MediaBlock,
    Session,
    SessionKind,
    TaskStatus,
    TextBlock,
    ThinkingBlock,
    ToolCallBlock,
    UserMessage,
)
from .reducer import fold, reduce
from .store import ChatStore

__all__ = [
    "Activity",
    "AssistantMessage",
    "ChatState",
    "ChatStore",
    "EventParseError",
    "GlobalListeners",
    "InProcessEventBus",
    "MediaBlock",
    "Session",
    "SessionKind",
    "TaskStatus",
    "TextBlock",
    "ThinkingBlock",
    "ToolCallBlock",
    "UserMessage",
    "activity_label",
    "fold",
    "infer_activity",
    "install_global_listeners",
    "load_events",
    "parse_event",
    "reduce",
    "status_to_activity",
]
