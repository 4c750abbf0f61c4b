"""EventBus — thread-safe pub/sub for host lifecycle events.

The host simulation publishes well-defined events (``entity_created``,
``entity_removed``, ``entity_sick``, ``job_quit``, ``home_changed``) and
Herald's urgent-alert listener subscribes to them.  The periodic diff
engine does not use the bus at all: it recomputes from full state each
tick.
"""

from __future__ import annotations

import queue
import threading

# Event types published by the host simulation
ENTITY_CREATED = "entity_created"
ENTITY_REMOVED = "entity_removed"
ENTITY_SICK = "entity_sick"
JOB_QUIT = "job_quit"
HOME_CHANGED = "home_changed"

HOST_EVENTS = frozenset({ENTITY_CREATED, ENTITY_REMOVED, ENTITY_SICK, JOB_QUIT, HOME_CHANGED})


class EventBus:
    """Simple thread-safe pub/sub for pushing events to subscribers."""

    QUEUE_SIZE = 100

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[tuple[queue.Queue, frozenset[str] | None]] = []

    def subscribe(self, event_types: set[str] | frozenset[str] | None = None) -> queue.Queue:
        """Subscribe to events. Returns a Queue that receives matching events.

        ``event_types`` restricts delivery to the named event types; None
        delivers everything.
        """
        q: queue.Queue = queue.Queue(maxsize=self.QUEUE_SIZE)
        wanted = frozenset(event_types) if event_types is not None else None
        with self._lock:
            self._subscribers.append((q, wanted))
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._lock:
            self._subscribers = [(sq, w) for sq, w in self._subscribers if sq is not q]

    def publish(self, event_type: str, data: dict | None = None) -> None:
        msg: dict = {"type": event_type}
        if data is not None:
            msg["data"] = data
        with self._lock:
            for q, wanted in self._subscribers:
                if wanted is not None and event_type not in wanted:
                    continue
                try:
                    q.put_nowait(msg)
                except queue.Full:
                    # Drop oldest so the newest event always lands
                    try:
                        q.get_nowait()
                    except queue.Empty:
                        pass
                    try:
                        q.put_nowait(msg)
                    except queue.Full:
                        pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
