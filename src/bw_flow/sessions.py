"""Session registry transitions.

The registry keeps two lists, interactive (``user``) and ``autonomous``
sessions, each most recent first, plus the id of the session whose
transcript is on screen. Every function returns a new ``ChatState``.
"""

import logging

from .models import ChatState, Session, SessionKind

logger = logging.getLogger(__name__)


def _field_for(kind: SessionKind) -> str:
    return "auto_sessions" if kind == SessionKind.AUTONOMOUS else "sessions"


def find_session(state: ChatState, session_id: str) -> Session | None:
    for sess in (*state.sessions, *state.auto_sessions):
        if sess.id == session_id:
            return sess
    return None


def list_sessions(state: ChatState, kind: SessionKind = SessionKind.USER) -> tuple[Session, ...]:
    return getattr(state, _field_for(kind))


def set_sessions(state: ChatState, kind: SessionKind, sessions: tuple[Session, ...]) -> ChatState:
    """Replace one list wholesale, e.g. with the result of a list query."""
    deduped: dict[str, Session] = {}
    for sess in sessions:
        deduped.setdefault(sess.id, sess)
    return state.model_copy(update={_field_for(kind): tuple(deduped.values())})


def add_session(state: ChatState, session: Session) -> ChatState:
    """Prepend a session, or replace it in place if its id is already known."""
    if find_session(state, session.id) is not None:
        return state.model_copy(
            update={
                "sessions": tuple(session if s.id == session.id else s for s in state.sessions),
                "auto_sessions": tuple(
                    session if s.id == session.id else s for s in state.auto_sessions
                ),
            }
        )
    field = _field_for(session.kind)
    return state.model_copy(update={field: (session, *getattr(state, field))})


def remove_session(state: ChatState, session_id: str) -> ChatState:
    """Forget a session. Its persisted history is not touched."""
    update: dict = {
        "sessions": tuple(s for s in state.sessions if s.id != session_id),
        "auto_sessions": tuple(s for s in state.auto_sessions if s.id != session_id),
    }
    if state.active_session_id == session_id:
        update.update(active_session_id=None, messages=())
    return state.model_copy(update=update)


def rename_session(
    state: ChatState, session_id: str, title: str, updated_at: int | None = None
) -> ChatState:
    title = title.strip()
    if not title:
        return state

    def renamed(sess: Session) -> Session:
        if sess.id != session_id:
            return sess
        changes: dict = {"title": title}
        if updated_at is not None:
            changes["updated_at"] = updated_at
        return sess.model_copy(update=changes)

    return state.model_copy(
        update={
            "sessions": tuple(renamed(s) for s in state.sessions),
            "auto_sessions": tuple(renamed(s) for s in state.auto_sessions),
        }
    )


def set_active(state: ChatState, session_id: str | None) -> ChatState:
    """Switch the visible transcript.

    Switching to another session empties the transcript until its history
    arrives; ``None`` shows an empty, already-loaded transcript.
    """
    if session_id is None:
        return state.model_copy(update={"active_session_id": None, "messages": (), "loaded": True})
    if session_id == state.active_session_id:
        return state
    if find_session(state, session_id) is None:
        logger.debug("Ignoring activation of unknown session %s", session_id)
        return state
    return state.model_copy(
        update={"active_session_id": session_id, "messages": (), "loaded": False}
    )
