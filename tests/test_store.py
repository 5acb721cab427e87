"""Tests for the ChatStore container."""

from bw_flow.events import SessionActivated, StatusEvent, StreamChunk, TaskSubmitted, UserPrompt
from bw_flow.models import AssistantMessage, ChatState, Session, SessionKind, TaskStatus
from bw_flow.store import ChatStore


def seeded_store(**kwargs) -> ChatStore:
    state = ChatState(
        sessions=(Session(id="s1"),),
        auto_sessions=(Session(id="a1", kind=SessionKind.AUTONOMOUS),),
        active_session_id="s1",
        loaded=True,
    )
    return ChatStore(state, **kwargs)


class TestDispatch:
    def test_dispatch_updates_state(self) -> None:
        store = seeded_store()
        store.dispatch(TaskSubmitted(task_id="t1", session_id="s1"))
        store.dispatch(StatusEvent(task_id="t1", status="executing"))
        message = store.find_assistant("t1")
        assert message.status == TaskStatus.EXECUTING
        assert store.active_session_id == "s1"

    def test_listeners_see_each_new_state(self) -> None:
        store = seeded_store()
        seen: list[ChatState] = []
        store.subscribe(seen.append)
        store.dispatch(TaskSubmitted(task_id="t1"))
        store.dispatch(StreamChunk(task_id="t1", chunk="hi"))
        assert len(seen) == 2
        assert seen[-1] is store.state

    def test_dropped_event_does_not_notify(self) -> None:
        store = seeded_store()
        seen: list[ChatState] = []
        store.subscribe(seen.append)
        before = store.state
        store.dispatch(StreamChunk(task_id="ghost", chunk="boo"))
        store.dispatch(SessionActivated(session_id="s1"))
        assert store.state is before
        assert seen == []

    def test_unsubscribe(self) -> None:
        store = seeded_store()
        seen: list[ChatState] = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        store.dispatch(TaskSubmitted(task_id="t1"))
        assert seen == []

    def test_custom_marker(self) -> None:
        store = seeded_store(marker="~")
        store.dispatch(TaskSubmitted(task_id="t1"))
        store.dispatch(StreamChunk(task_id="t1", chunk="~ hmm"))
        assert store.find_assistant("t1").blocks[0].type == "thinking"


class TestReads:
    def test_defaults(self) -> None:
        store = ChatStore()
        assert store.messages == ()
        assert store.active_session_id is None
        assert store.active_assistant_message() is None

    def test_list_sessions(self) -> None:
        store = seeded_store()
        assert [s.id for s in store.list_sessions()] == ["s1"]
        assert [s.id for s in store.list_sessions(SessionKind.AUTONOMOUS)] == ["a1"]

    def test_active_assistant_message(self) -> None:
        store = seeded_store()
        store.dispatch(UserPrompt(message_id="u1", session_id="s1", text="go"))
        assert store.active_assistant_message() is None
        store.dispatch(TaskSubmitted(task_id="t1", session_id="s1"))
        active = store.active_assistant_message()
        assert isinstance(active, AssistantMessage)
        assert active.task_id == "t1"
