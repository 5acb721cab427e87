"""The single owned state container the views read from."""

import logging
import threading
from collections.abc import Callable

from . import sessions
from .activity import REASONING_MARKER
from .events import Event
from .models import AssistantMessage, ChatState, Message, Session, SessionKind
from .reducer import find_assistant, reduce

logger = logging.getLogger(__name__)

StateListener = Callable[[ChatState], None]


class ChatStore:
    """Holds the current ``ChatState``; the only way to change it is ``dispatch``.

    Reads may come from any thread. Writes are expected from one consumer
    (see ``listeners.GlobalListeners``); the lock only makes each swap of
    the state reference and the listener snapshot atomic.
    """

    def __init__(self, state: ChatState | None = None, *, marker: str = REASONING_MARKER) -> None:
        self._state = state if state is not None else ChatState()
        self._marker = marker
        self._lock = threading.Lock()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._state.messages

    @property
    def active_session_id(self) -> str | None:
        return self._state.active_session_id

    def list_sessions(self, kind: SessionKind = SessionKind.USER) -> tuple[Session, ...]:
        return sessions.list_sessions(self._state, kind)

    def find_assistant(self, task_id: str) -> AssistantMessage | None:
        return find_assistant(self._state, task_id)

    def active_assistant_message(self) -> AssistantMessage | None:
        """The last message, if the assistant wrote it."""
        messages = self._state.messages
        if messages and isinstance(messages[-1], AssistantMessage):
            return messages[-1]
        return None

    def dispatch(self, event: Event) -> ChatState:
        """Reduce one event and notify listeners if the state changed."""
        with self._lock:
            previous = self._state
            self._state = reduce(previous, event, marker=self._marker)
            current = self._state
            listeners = list(self._listeners)
        if current is not previous:
            for listener in listeners:
                listener(current)
        return current

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with each new state. Returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
