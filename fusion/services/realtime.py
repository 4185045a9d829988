"""Change feed broadcaster shared by SSE clients and in-process listeners.

Everything lives in process memory, so one broadcaster serves one Waitress
process. Running several workers needs an external pub/sub in front of it.
"""

import itertools
import json
import logging
import time
from collections import deque
from threading import Event, Lock
from typing import Any, Callable, Deque, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

CHANGE_TYPES = ("INSERT", "UPDATE", "DELETE")

_sequence = itertools.count(1)


class RealtimeEvent:
    """A row-level change on one table.

    ``user_id`` restricts delivery to a single user's streams; ``scope`` is
    the table name.
    """

    def __init__(
        self,
        event_type: str,
        data: Dict[str, Any],
        scope: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self.id = next(_sequence)
        self.event_type = event_type
        self.data = data
        self.scope = scope
        self.user_id = user_id
        self.timestamp = time.time()

    def to_sse(self) -> str:
        payload = {"id": self.id, "type": self.event_type, "data": self.data, "timestamp": self.timestamp}
        if self.scope:
            payload["scope"] = self.scope
        return f"id: {self.id}\ndata: {json.dumps(payload, default=str)}\n\n"

    def visible_to(self, user_id: str, scopes: Set[str]) -> bool:
        if self.user_id is not None and self.user_id != user_id:
            return False
        return "all" in scopes or self.scope is None or self.scope in scopes


class _StreamClient:
    """One open SSE connection: its scopes and a bounded backlog."""

    def __init__(self, scopes: Set[str], backlog: int) -> None:
        self.scopes = scopes
        self.queue: Deque[RealtimeEvent] = deque(maxlen=backlog)
        self.wakeup = Event()
        self.connected_at = time.monotonic()

    def push(self, event: RealtimeEvent) -> None:
        self.queue.append(event)
        self.wakeup.set()


class Subscription:
    """Handle returned by :meth:`RealtimeBroadcaster.subscribe`."""

    def __init__(
        self,
        broadcaster: "RealtimeBroadcaster",
        table: str,
        callback: Callable[[RealtimeEvent], None],
        event: str = "*",
        row_filter: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._broadcaster = broadcaster
        self.table = table
        self.callback = callback
        self.event = event
        self.row_filter = dict(row_filter or {})
        self.active = True

    def matches(self, event: RealtimeEvent) -> bool:
        if not self.active or event.scope != self.table:
            return False
        if self.event not in ("*", event.event_type):
            return False
        return all(event.data.get(key) == expected for key, expected in self.row_filter.items())

    def unsubscribe(self) -> None:
        self.active = False
        self._broadcaster._remove_subscription(self)


class RealtimeBroadcaster:
    """Fans change events out to SSE streams and in-process subscriptions."""

    def __init__(self, max_queue_size: int = 100, max_connections_per_user: int = 3):
        self.max_queue_size = max_queue_size
        self.max_connections_per_user = max_connections_per_user
        self._streams: Dict[str, Dict[str, _StreamClient]] = {}
        self._subscriptions: List[Subscription] = []
        self._lock = Lock()

    # -- SSE streams -------------------------------------------------------

    def register_client(self, user_id: str, subscribed_scopes: Optional[Set[str]] = None) -> str:
        """Open a stream for ``user_id``; past the per-user cap the oldest one is closed."""
        client_id = f"{user_id}_{next(_sequence)}"
        with self._lock:
            streams = self._streams.setdefault(user_id, {})
            if len(streams) >= self.max_connections_per_user:
                oldest = min(streams, key=lambda cid: streams[cid].connected_at)
                streams.pop(oldest).wakeup.set()
            streams[client_id] = _StreamClient(subscribed_scopes or {"all"}, self.max_queue_size)
        return client_id

    def unregister_client(self, user_id: str, client_id: str) -> None:
        with self._lock:
            streams = self._streams.get(user_id, {})
            client = streams.pop(client_id, None)
            if client is not None:
                client.wakeup.set()
            if not streams:
                self._streams.pop(user_id, None)

    def _client(self, user_id: str, client_id: str) -> Optional[_StreamClient]:
        return self._streams.get(user_id, {}).get(client_id)

    def is_registered(self, user_id: str, client_id: str) -> bool:
        with self._lock:
            return self._client(user_id, client_id) is not None

    def wait_for_events(self, user_id: str, client_id: str, timeout: float = 30.0) -> bool:
        """Block until the stream has events; False on timeout or when it was closed."""
        with self._lock:
            client = self._client(user_id, client_id)
        if client is None:
            return False
        return client.wakeup.wait(timeout)

    def get_events(self, user_id: str, client_id: str, since_id: Optional[int] = None) -> List[RealtimeEvent]:
        """Drain the stream's backlog, skipping ids at or below ``since_id``."""
        with self._lock:
            client = self._client(user_id, client_id)
            if client is None:
                return []
            events = [event for event in client.queue if since_id is None or event.id > since_id]
            client.queue.clear()
            client.wakeup.clear()
        return events

    def get_connected_users(self) -> List[str]:
        with self._lock:
            return list(self._streams)

    def get_client_count(self) -> int:
        with self._lock:
            return sum(len(streams) for streams in self._streams.values())

    # -- in-process subscriptions -----------------------------------------

    def subscribe(
        self,
        table: str,
        callback: Callable[[RealtimeEvent], None],
        event: str = "*",
        row_filter: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        """Register ``callback`` for changes on ``table``.

        ``event`` is one of INSERT, UPDATE, DELETE or ``*``; ``row_filter``
        narrows delivery to rows whose snapshot matches every key. Callbacks
        run on the publishing thread and must return quickly.
        """
        if event != "*" and event not in CHANGE_TYPES:
            raise ValueError(f"unknown change type: {event}")
        subscription = Subscription(self, table, callback, event, row_filter)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # -- publishing ---------------------------------------------------------

    def broadcast(
        self,
        event_type: str,
        data: Dict[str, Any],
        user_id: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> RealtimeEvent:
        """Queue ``event_type`` on every matching stream, then run the subscriptions."""
        event = RealtimeEvent(event_type, data, scope=scope, user_id=user_id)
        with self._lock:
            for uid, streams in self._streams.items():
                for client in streams.values():
                    if event.visible_to(uid, client.scopes):
                        client.push(event)
            targets = [sub for sub in self._subscriptions if sub.matches(event)]

        for subscription in targets:
            try:
                subscription.callback(event)
            except Exception:
                logger.exception("Realtime subscriber failed for %s %s", event.scope, event.event_type)
        return event


_broadcaster = RealtimeBroadcaster()


def get_broadcaster() -> RealtimeBroadcaster:
    """Process-wide broadcaster used by the change feed and the SSE route."""
    return _broadcaster
