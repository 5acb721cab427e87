"""Pytest configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from bw_flow.events import StatusEvent, TaskSubmitted, UserPrompt
from bw_flow.models import ChatState, Session, TaskStatus
from bw_flow.reducer import fold


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the fixtures directory path."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def simple_events(fixtures_dir: Path) -> Path:
    """Return path to simple_task.jsonl fixture."""
    return fixtures_dir / "simple_task.jsonl"


@pytest.fixture
def interleaved_events(fixtures_dir: Path) -> Path:
    """Return path to interleaved.jsonl fixture."""
    return fixtures_dir / "interleaved.jsonl"


@pytest.fixture
def make_state() -> Callable[..., ChatState]:
    """Build a state with session s1 active and one prompt + assistant message per task.

    Assistant message ids are ``m-<task_id>``; ``status`` optionally moves every task there.
    """

    def build(*task_ids: str, status: TaskStatus | None = None) -> ChatState:
        events: list = []
        for i, task_id in enumerate(task_ids):
            events.append(
                UserPrompt(
                    message_id=f"u-{task_id}", session_id="s1", text=f"do {task_id}", created_at=i
                )
            )
            events.append(
                TaskSubmitted(
                    task_id=task_id, session_id="s1", message_id=f"m-{task_id}", created_at=i
                )
            )
            if status is not None:
                events.append(StatusEvent(task_id=task_id, status=status))
        state = ChatState(
            sessions=(Session(id="s1", title="Chat"),), active_session_id="s1", loaded=True
        )
        return fold(events, state)

    return build
