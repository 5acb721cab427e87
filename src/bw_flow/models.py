"""Domain models for bw-flow."""

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FrozenModel(BaseModel):
    """Immutable model that also accepts camelCase wire names."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class TaskStatus(str, Enum):
    """Lifecycle of an orchestrator task."""

    QUEUED = "queued"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})
IN_FLIGHT_STATUSES = frozenset({TaskStatus.PLANNING, TaskStatus.EXECUTING})


class Activity(str, Enum):
    """Coarse user-facing phase of an assistant message."""

    IDLE = "idle"
    THINKING = "thinking"
    REASONING = "reasoning"
    TOOL_USE = "tool_use"
    READING = "reading"
    SEARCHING = "searching"
    WRITING = "writing"
    EDITING = "editing"
    EXECUTING = "executing"
    DELEGATING = "delegating"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    ERROR = "error"


class SessionKind(str, Enum):
    USER = "user"
    AUTONOMOUS = "autonomous"


class TaskListItemStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


# ─── Blocks ───


class TextBlock(FrozenModel):
    """Regular assistant prose."""

    type: Literal["text"] = "text"
    content: str = ""
    is_streaming: bool = False


class ThinkingBlock(FrozenModel):
    """A reasoning trace, rendered apart from answer text."""

    type: Literal["thinking"] = "thinking"
    content: str = ""
    is_streaming: bool = False


class ToolCallBlock(FrozenModel):
    """A single tool invocation."""

    type: Literal["tool_call"] = "tool_call"
    task_id: str
    agent_type: str = ""
    step: int = 0
    tool: str = ""
    tool_name: str = ""
    args: dict[str, Any] = {}
    success: bool = True
    summary: str = ""
    duration: float | None = None  # ms
    result_preview: str | None = None
    timestamp: int = 0  # epoch ms


class MediaBlock(FrozenModel):
    """Embedded media, e.g. a video or playlist."""

    type: Literal["media"] = "media"
    kind: str = "youtube"
    ref: str
    title: str | None = None
    playlist_id: str | None = None
    start_at: int | None = None  # seconds


ContentBlock = Annotated[
    TextBlock | ThinkingBlock | ToolCallBlock | MediaBlock,
    Field(discriminator="type"),
]


# ─── Overlay and telemetry payloads ───


class TaskListItem(FrozenModel):
    """One step of the planner's checklist."""

    id: str
    title: str = ""
    agent: str = ""
    status: TaskListItemStatus = TaskListItemStatus.PENDING
    depends_on: tuple[str, ...] = ()


class FollowupQuestion(FrozenModel):
    question_id: str
    question: str = Field(default="", validation_alias=AliasChoices("question", "text"))
    options: tuple[str, ...] | None = None


class ApprovalRequest(FrozenModel):
    approval_id: str
    task_id: str | None = None
    agent_type: str | None = None
    tool: str | None = None
    args: dict[str, Any] = {}
    summary: str = ""
    diff_preview: str | None = None
    safety_level: Literal["safe", "write", "execute", "dangerous"] | None = None


class CheckpointInfo(FrozenModel):
    id: str = ""
    task_id: str
    step: int = 0
    tool: str = ""
    file_path: str = ""
    commit_hash: str = ""
    description: str = ""
    created_at: str = ""


class ContextUsage(FrozenModel):
    """Context window usage snapshot for a task."""

    task_id: str
    agent_type: str = ""
    tokens_used: int
    budget_total: int
    usage_percent: float
    message_count: int
    condensations: int
    step: int


# ─── Sessions and messages ───


class Session(FrozenModel):
    """A conversation listed in the sidebar."""

    id: str
    title: str = ""
    kind: SessionKind = Field(
        default=SessionKind.USER, validation_alias=AliasChoices("kind", "type")
    )
    created_at: int = 0
    updated_at: int | None = None
    task_count: int | None = None


class UserMessage(FrozenModel):
    role: Literal["user"] = "user"
    id: str
    session_id: str | None = None
    text: str
    created_at: int = 0


class AssistantMessage(FrozenModel):
    """The transcript entry for one orchestrator task."""

    role: Literal["assistant"] = "assistant"
    id: str
    task_id: str
    session_id: str | None = None
    status: TaskStatus = TaskStatus.QUEUED
    activity: Activity = Activity.IDLE
    blocks: tuple[ContentBlock, ...] = ()
    plain_text: str = ""  # answer chunks only
    result: Any = None
    error: str | None = None
    is_streaming: bool = False
    task_list: tuple[TaskListItem, ...] | None = None
    followup_question: FollowupQuestion | None = None
    approval_request: ApprovalRequest | None = None
    checkpoints: tuple[CheckpointInfo, ...] = ()
    context_usage: ContextUsage | None = None
    created_at: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


Message = Annotated[UserMessage | AssistantMessage, Field(discriminator="role")]


class ChatState(FrozenModel):
    """Everything the views read: session registry plus the active transcript."""

    sessions: tuple[Session, ...] = ()
    auto_sessions: tuple[Session, ...] = ()
    active_session_id: str | None = None
    messages: tuple[Message, ...] = ()
    loaded: bool = False
