"""Always-on event subscriptions feeding the chat store.

The transport that delivers orchestrator events is external; it is seen
here only through ``EventSource``. ``GlobalListeners`` registers one
callback per channel and owns a FIFO mailbox drained by a single worker
thread, so every event reaches the reducer in delivery order and no view
has to be alive for it to arrive.
"""

import atexit
import logging
import queue
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol

from .events import EventParseError, parse_event
from .store import ChatStore

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
Unsubscribe = Callable[[], None]

# Transport channel -> event kind.
CHANNEL_KINDS: dict[str, str] = {
    "session:created": "session_created",
    "task:update": "task_update",
    "stream:chunk": "stream_chunk",
    "agent:ask-user": "followup_question",
    "agent:question-answered": "followup_cleared",
    "agent:approval-needed": "approval_request",
    "agent:approval-resolved": "approval_cleared",
    "checkpoint:created": "checkpoint",
    "agent:tool-call-info": "tool_call",
    "agent:context-usage": "context_usage",
    "youtube:play": "media_play",
}

_STOP = object()


class EventSource(Protocol):
    def subscribe(self, channel: str, callback: Callable[[Payload], None]) -> Unsubscribe: ...


class InProcessEventBus:
    """Thread-safe publish/subscribe bus, for embedding and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Callable[[Payload], None]]] = defaultdict(list)

    def subscribe(self, channel: str, callback: Callable[[Payload], None]) -> Unsubscribe:
        with self._lock:
            self._subscribers[channel].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers[channel]:
                    self._subscribers[channel].remove(callback)

        return unsubscribe

    def publish(self, channel: str, payload: Payload) -> int:
        """Deliver ``payload`` to every subscriber of ``channel``; returns how many."""
        with self._lock:
            callbacks = list(self._subscribers.get(channel, ()))
        for callback in callbacks:
            callback(payload)
        return len(callbacks)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, ()))


class GlobalListeners:
    """Mailbox actor between an event source and the store."""

    def __init__(self, source: EventSource, store: ChatStore, *, mailbox_size: int = 0) -> None:
        self._source = source
        self._store = store
        self._mailbox: queue.Queue = queue.Queue(maxsize=mailbox_size)
        self._unsubs: list[Unsubscribe] = []
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        """Register on every channel and start the worker. Calling again is a no-op."""
        with self._lock:
            if self._worker is not None:
                return
            self._worker = threading.Thread(target=self._run, daemon=True, name="bw-flow-listeners")
            self._worker.start()
            self._register()
        logger.info("Global listeners registered (%d channels)", len(CHANNEL_KINDS))

    def stop(self, timeout: float | None = 5.0) -> None:
        """Unsubscribe, finish processing what was already delivered, stop the worker."""
        with self._lock:
            worker = self._worker
            if worker is None:
                return
            self._unregister()
            self._mailbox.put(_STOP)
            self._worker = None
        worker.join(timeout=timeout)
        logger.info("Global listeners torn down")

    def reconnect(self, source: EventSource) -> None:
        """Move the subscriptions to a new source, e.g. after the transport reconnected."""
        with self._lock:
            self._unregister()
            self._source = source
            if self._worker is not None:
                self._register()
        logger.info("Global listeners re-registered on new source")

    def wait_idle(self) -> None:
        """Block until every event delivered so far has been reduced."""
        self._mailbox.join()

    def _register(self) -> None:
        for channel, kind in CHANNEL_KINDS.items():
            self._unsubs.append(self._source.subscribe(channel, self._enqueuer(kind)))

    def _unregister(self) -> None:
        for unsub in self._unsubs:
            unsub()
        self._unsubs = []

    def _enqueuer(self, kind: str) -> Callable[[Payload], None]:
        def enqueue(payload: Payload) -> None:
            if kind == "session_created":
                record = {"kind": kind, "session": payload}
            else:
                record = {**payload, "kind": kind}
            self._mailbox.put(record)

        return enqueue

    def _run(self) -> None:
        while True:
            record = self._mailbox.get()
            try:
                if record is _STOP:
                    return
                self._handle(record)
            finally:
                self._mailbox.task_done()

    def _handle(self, record: Payload) -> None:
        try:
            event = parse_event(record)
        except EventParseError as e:
            logger.warning("Ignoring event: %s", e)
            return
        try:
            self._store.dispatch(event)
        except Exception:
            logger.exception("Failed to apply %s event", record.get("kind"))


_global: GlobalListeners | None = None
_global_lock = threading.Lock()


def install_global_listeners(
    source: EventSource, store: ChatStore, *, mailbox_size: int = 0
) -> GlobalListeners:
    """Create and start the process-wide listeners once; later calls return the same instance."""
    global _global
    with _global_lock:
        if _global is None:
            _global = GlobalListeners(source, store, mailbox_size=mailbox_size)
            _global.start()
            atexit.register(shutdown_global_listeners)
        return _global


def shutdown_global_listeners() -> None:
    global _global
    with _global_lock:
        listeners, _global = _global, None
    if listeners is not None:
        listeners.stop()
