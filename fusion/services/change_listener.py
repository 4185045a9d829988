"""Reload a board whenever the change feed reports activity on its tables."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional

from flask import current_app

from fusion.extensions.task_queue import submit_io_task
from fusion.services.realtime import RealtimeBroadcaster, Subscription, get_broadcaster

logger = logging.getLogger(__name__)

TASK_TABLES = ("tasks", "task_owners", "task_messages")


class ChangeListener:
    """Subscribes a controller's ``reload`` to the change feed.

    Every insert, update or delete on the watched tables schedules one full
    reload; events arriving while a reload is still queued collapse into it.
    ``user_tables`` maps a table to the column that must equal the bound
    user id (e.g. ``{"notifications": "user_id"}``).

    Callbacks fire inside the publishing session's commit, where no SQL may
    run, so reloads are handed to ``dispatch`` (the shared IO executor by
    default) and run inside a fresh application context.
    """

    def __init__(
        self,
        controller,
        tables: Iterable[str] = TASK_TABLES,
        user_tables: Optional[Dict[str, str]] = None,
        broadcaster: Optional[RealtimeBroadcaster] = None,
        dispatch: Optional[Callable[[Callable[[], None]], object]] = None,
    ) -> None:
        self.controller = controller
        self.tables = tuple(tables)
        self.user_tables = dict(user_tables or {})
        self._broadcaster = broadcaster or get_broadcaster()
        self._dispatch = dispatch or submit_io_task
        self._subscriptions: List[Subscription] = []
        self._lock = Lock()
        self._pending = False
        self._app = None
        self.user_id: Optional[str] = None

    @property
    def active(self) -> bool:
        return bool(self._subscriptions)

    def bind(self, user_id: Optional[str]) -> None:
        """(Re)subscribe for ``user_id``, dropping any previous subscriptions."""
        self.stop()
        self.user_id = user_id
        try:
            self._app = current_app._get_current_object()
        except RuntimeError:
            self._app = None

        subscriptions = [
            self._broadcaster.subscribe(table, self._on_change) for table in self.tables
        ]
        if user_id is not None:
            for table, column in self.user_tables.items():
                subscriptions.append(
                    self._broadcaster.subscribe(
                        table, self._on_change, row_filter={column: user_id}
                    )
                )
        self._subscriptions = subscriptions

    def stop(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()
        with self._lock:
            self._pending = False

    def _on_change(self, event) -> None:
        if not self._subscriptions:
            return
        with self._lock:
            if self._pending:
                return
            self._pending = True
        logger.debug("change on %s (%s): reload scheduled", event.scope, event.event_type)
        self._dispatch(self._run_reload)

    def _run_reload(self) -> None:
        with self._lock:
            self._pending = False
        if self.controller.closed:
            return
        if self._app is not None:
            with self._app.app_context():
                self.controller.reload()
        else:
            self.controller.reload()
