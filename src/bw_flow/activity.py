"""Map step labels, tool names and task statuses to user-facing activities."""

from .models import Activity, TaskStatus

REASONING_MARKER = "💭"

# First match wins, so the more specific tool verbs come before the generic ones.
ACTIVITY_KEYWORDS: tuple[tuple[Activity, tuple[str, ...]], ...] = (
    (Activity.READING, ("reading", "file_read", "read_file")),
    (Activity.SEARCHING, ("searching", "grep", "search")),
    (Activity.WRITING, ("writing", "file_write", "file_create", "creating")),
    (Activity.EDITING, ("editing", "file_edit", "apply_patch", "patching")),
    (Activity.EXECUTING, ("executing", "shell", "running")),
    (Activity.DELEGATING, ("delegat", "subagent")),
    (Activity.EVALUATING, ("evaluat", "review", "reflect")),
    (Activity.THINKING, ("thinking", "planning", "analyz")),
    (Activity.TOOL_USE, ("tool", "calling", "invoking")),
)

TOOL_USE_ACTIVITIES = frozenset(
    {
        Activity.TOOL_USE,
        Activity.READING,
        Activity.SEARCHING,
        Activity.WRITING,
        Activity.EDITING,
        Activity.EXECUTING,
        Activity.DELEGATING,
        Activity.EVALUATING,
    }
)

STATUS_ACTIVITY: dict[TaskStatus, Activity] = {
    TaskStatus.QUEUED: Activity.IDLE,
    TaskStatus.PLANNING: Activity.THINKING,
    TaskStatus.EXECUTING: Activity.THINKING,
    TaskStatus.COMPLETED: Activity.COMPLETED,
    TaskStatus.FAILED: Activity.ERROR,
    TaskStatus.CANCELLED: Activity.IDLE,
}

ACTIVITY_LABELS: dict[Activity, str] = {
    Activity.IDLE: "",
    Activity.THINKING: "Thinking...",
    Activity.REASONING: "Reasoning...",
    Activity.TOOL_USE: "Using tools...",
    Activity.READING: "Reading files...",
    Activity.SEARCHING: "Searching...",
    Activity.WRITING: "Writing code...",
    Activity.EDITING: "Editing files...",
    Activity.EXECUTING: "Running command...",
    Activity.DELEGATING: "Delegating to agent...",
    Activity.EVALUATING: "Evaluating...",
    Activity.COMPLETED: "Done",
    Activity.ERROR: "Error",
}


def infer_activity(label: str | None, marker: str = REASONING_MARKER) -> Activity:
    """Infer an activity from a free-form step label or tool name.

    Keywords win over the reasoning marker. Total: anything unrecognised
    (including an empty label) is ``thinking``.
    """
    if not label:
        return Activity.THINKING
    lower = label.lower()
    for activity, keywords in ACTIVITY_KEYWORDS:
        if any(k in lower for k in keywords):
            return activity
    if marker and label.startswith(marker):
        return Activity.REASONING
    return Activity.THINKING


def status_to_activity(status: TaskStatus) -> Activity:
    """Activity shown for a bare status with no step label."""
    return STATUS_ACTIVITY.get(TaskStatus(status), Activity.IDLE)


def is_tool_use(activity: Activity) -> bool:
    return activity in TOOL_USE_ACTIVITIES


def activity_label(activity: Activity) -> str:
    """Display label for the status indicator."""
    return ACTIVITY_LABELS[activity]
