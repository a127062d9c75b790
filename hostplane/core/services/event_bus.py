"""
EventBus — thread-safe, in-process pub/sub for host state snapshots.

Every status query and every mutation outcome is published here.
Observers either register a callback (``add_listener``) or pull from
a queue-backed generator (``subscribe``) that replays missed events
from a bounded ring buffer, or sends the latest snapshot per key when
the observer was away too long.

Delivery is best effort: a full subscriber queue drops that
subscriber, a raising listener is logged and skipped.  ``publish``
never raises into the mutation that triggered it.

Thread safety model
───────────────────
- ``_lock`` protects ``_seq``, ``_buffer``, ``_subscribers``,
  ``_listeners`` and ``_latest``.
- Listener callbacks run outside the lock, on the publishing thread.

Message standard (v1)
─────────────────────
Every event is a dict with these fields::

    {
        "v": 1,                     # schema version
        "ts": 1739648400.123,       # publish timestamp
        "seq": 47,                  # monotonic sequence
        "type": "locale:status",    # <domain>:<action>
        "key": "locale",            # resource identifier
        "success": true,            # outcome of the query/mutation
        "data": { ... },            # LocaleStatus / KernelInfo / outcome
    }
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from typing import Any, Callable, Generator

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

# ── Channels ────────────────────────────────────────────────────

LOCALE_STATUS = "locale:status"
LOCALE_OUTCOME = "locale:outcome"
KERNEL_STATUS = "kernel:status"
KERNEL_OUTCOME = "kernel:outcome"

_SNAPSHOT_TYPES = frozenset({LOCALE_STATUS, KERNEL_STATUS})

Listener = Callable[[dict], None]


class EventBus:
    """Thread-safe, in-process pub/sub with bounded replay buffer.

    Parameters
    ----------
    buffer_size : int
        Maximum number of events kept for replay.
    subscriber_queue_size : int
        Maximum backlog per queue subscriber before it is dropped.
    """

    def __init__(
        self,
        *,
        buffer_size: int = 200,
        subscriber_queue_size: int = 100,
    ) -> None:
        self._lock = threading.Lock()
        self._seq: int = 0
        self._buffer: deque[dict] = deque(maxlen=buffer_size)
        self._subscribers: list[queue.Queue[dict]] = []
        self._listeners: list[Listener] = []
        self._subscriber_queue_size = subscriber_queue_size
        self._latest: dict[str, dict] = {}  # key → latest *:status event

    @property
    def seq(self) -> int:
        """Current sequence number (monotonically increasing)."""
        with self._lock:
            return self._seq

    @property
    def subscriber_count(self) -> int:
        """Active queue subscribers plus registered listeners."""
        with self._lock:
            return len(self._subscribers) + len(self._listeners)

    # ── Publishing ──────────────────────────────────────────────

    def publish(
        self,
        event_type: str,
        *,
        key: str = "",
        success: bool = True,
        data: dict[str, Any] | None = None,
    ) -> dict:
        """Broadcast an event to every observer.

        Returns
        -------
        dict
            The full event dict with ``seq`` assigned.
        """
        with self._lock:
            self._seq += 1
            event: dict[str, Any] = {
                "v": _SCHEMA_VERSION,
                "ts": time.time(),
                "seq": self._seq,
                "type": event_type,
                "key": key,
                "success": success,
                "data": data or {},
            }
            self._buffer.append(event)

            if event_type in _SNAPSHOT_TYPES and key:
                self._latest[key] = event

            dead: list[queue.Queue[dict]] = []
            for q in self._subscribers:
                try:
                    q.put_nowait(event)
                except queue.Full:
                    dead.append(q)
            for q in dead:
                self._subscribers.remove(q)
                logger.info("Dropped unresponsive subscriber (queue full)")

            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.warning("Listener %r failed on %s", listener, event_type, exc_info=True)

        logger.debug("event %s key=%s success=%s", event_type, key or "-", success)
        return event

    # ── Observers ───────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for every future event.

        Returns
        -------
        Callable
            Call it to unregister the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    def subscribe(
        self,
        *,
        since: int = 0,
        idle_timeout: float | None = None,
    ) -> Generator[dict, None, None]:
        """Yield events for a pulling observer.  Blocks between events.

        Parameters
        ----------
        since : int
            Sequence number already seen.  Newer buffered events are
            replayed; if ``since`` is 0 or older than the buffer, the
            latest status event per key is sent instead.
        idle_timeout : float | None
            Stop iterating after this many idle seconds (None = never).
        """
        q: queue.Queue[dict] = queue.Queue(maxsize=self._subscriber_queue_size)

        with self._lock:
            replay: list[dict] = []
            if since > 0 and self._buffer and since >= self._buffer[0]["seq"]:
                replay = [e for e in self._buffer if e["seq"] > since]
            else:
                replay = sorted(self._latest.values(), key=lambda e: e["seq"])
            self._subscribers.append(q)

        logger.debug("Subscriber connected (since=%d, replay=%d)", since, len(replay))

        try:
            yield from replay
            while True:
                try:
                    yield q.get(timeout=idle_timeout)
                except queue.Empty:
                    return
        finally:
            with self._lock:
                if q in self._subscribers:
                    self._subscribers.remove(q)
            logger.debug("Subscriber disconnected")

    def snapshot(self) -> dict[str, dict]:
        """Latest status event per key."""
        with self._lock:
            return dict(self._latest)


# ── Module-level default ────────────────────────────────────────

bus = EventBus()
"""Default bus used when a caller does not inject its own publisher.

    from hostplane.core.services.event_bus import bus
    bus.add_listener(print)
"""
