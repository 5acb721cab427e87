"""Tests for the session registry."""

from bw_flow.events import (
    SessionActivated,
    SessionCreated,
    SessionRemoved,
    SessionRenamed,
    SessionsListed,
)
from bw_flow.models import ChatState, Session, SessionKind, UserMessage
from bw_flow.reducer import reduce
from bw_flow.sessions import (
    add_session,
    find_session,
    list_sessions,
    remove_session,
    rename_session,
    set_active,
    set_sessions,
)


def sess(session_id: str, kind: SessionKind = SessionKind.USER, **kwargs) -> Session:
    return Session(id=session_id, title=f"Session {session_id}", kind=kind, **kwargs)


def registry() -> ChatState:
    state = set_sessions(ChatState(), SessionKind.USER, (sess("s1"), sess("s2")))
    return set_sessions(state, SessionKind.AUTONOMOUS, (sess("a1", SessionKind.AUTONOMOUS),))


class TestLists:
    def test_lists_are_separate(self) -> None:
        state = registry()
        assert [s.id for s in list_sessions(state)] == ["s1", "s2"]
        assert [s.id for s in list_sessions(state, SessionKind.AUTONOMOUS)] == ["a1"]

    def test_set_sessions_drops_duplicate_ids(self) -> None:
        state = set_sessions(ChatState(), SessionKind.USER, (sess("s1"), sess("s1"), sess("s2")))
        assert [s.id for s in state.sessions] == ["s1", "s2"]

    def test_find_session_searches_both_lists(self) -> None:
        state = registry()
        assert find_session(state, "a1").kind == SessionKind.AUTONOMOUS
        assert find_session(state, "nope") is None


class TestAdd:
    def test_prepends_new_session(self) -> None:
        state = add_session(registry(), sess("s3"))
        assert [s.id for s in state.sessions] == ["s3", "s1", "s2"]
        assert len(state.auto_sessions) == 1

    def test_autonomous_goes_to_auto_list(self) -> None:
        state = add_session(registry(), sess("a2", SessionKind.AUTONOMOUS))
        assert [s.id for s in state.auto_sessions] == ["a2", "a1"]

    def test_known_id_replaced_in_place(self) -> None:
        state = add_session(registry(), Session(id="s2", title="Renamed"))
        assert [s.id for s in state.sessions] == ["s1", "s2"]
        assert state.sessions[1].title == "Renamed"


class TestRemoveAndRename:
    def test_remove(self) -> None:
        state = remove_session(registry(), "s1")
        assert [s.id for s in state.sessions] == ["s2"]

    def test_remove_active_clears_transcript(self) -> None:
        state = set_active(registry(), "s1")
        state = state.model_copy(update={"messages": (UserMessage(id="u1", text="hi"),)})
        state = remove_session(state, "s1")
        assert state.active_session_id is None
        assert state.messages == ()

    def test_remove_inactive_keeps_transcript(self) -> None:
        state = set_active(registry(), "s1")
        state = state.model_copy(update={"messages": (UserMessage(id="u1", text="hi"),)})
        state = remove_session(state, "s2")
        assert state.active_session_id == "s1"
        assert len(state.messages) == 1

    def test_rename(self) -> None:
        state = rename_session(registry(), "a1", "  Nightly run  ", updated_at=99)
        renamed = find_session(state, "a1")
        assert renamed.title == "Nightly run"
        assert renamed.updated_at == 99

    def test_blank_title_ignored(self) -> None:
        state = registry()
        assert rename_session(state, "s1", "   ") is state


class TestActivate:
    def test_switch_clears_transcript_and_waits_for_history(self) -> None:
        state = registry().model_copy(
            update={"messages": (UserMessage(id="u1", text="hi"),), "loaded": True}
        )
        state = set_active(state, "s2")
        assert state.active_session_id == "s2"
        assert state.messages == ()
        assert state.loaded is False

    def test_same_session_is_noop(self) -> None:
        state = set_active(registry(), "s1")
        assert set_active(state, "s1") is state

    def test_unknown_session_ignored(self) -> None:
        state = registry()
        assert set_active(state, "missing") is state

    def test_none_shows_empty_loaded_transcript(self) -> None:
        state = set_active(set_active(registry(), "s1"), None)
        assert state.active_session_id is None
        assert state.messages == ()
        assert state.loaded is True


class TestRegistryEvents:
    def test_events_route_through_reduce(self) -> None:
        state = reduce(ChatState(), SessionsListed(sessions=(sess("s1"),)))
        state = reduce(state, SessionCreated(session=sess("s2")))
        state = reduce(state, SessionActivated(session_id="s2"))
        state = reduce(state, SessionRenamed(session_id="s2", title="Bugfix"))
        assert [s.id for s in state.sessions] == ["s2", "s1"]
        assert state.active_session_id == "s2"
        assert find_session(state, "s2").title == "Bugfix"

        state = reduce(state, SessionRemoved(session_id="s2"))
        assert [s.id for s in state.sessions] == ["s1"]
        assert state.active_session_id is None

    def test_listed_autonomous(self) -> None:
        event = SessionsListed(
            session_kind=SessionKind.AUTONOMOUS, sessions=(sess("a1", SessionKind.AUTONOMOUS),)
        )
        state = reduce(ChatState(), event)
        assert state.sessions == ()
        assert [s.id for s in state.auto_sessions] == ["a1"]
