"""In-memory task board with optimistic edits and reload-on-failure.

The controller keeps the list the dashboard renders. Local edits are
applied before the store confirms them; any store failure triggers a full
reload so a rejected edit never survives. Reloads may also arrive from the
change listener at any moment. Whichever state-replacing operation finishes
last wins: an optimistic edit and a concurrent reload are not ordered
against each other, and callers must not expect more than eventual
agreement with the store.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Loader = Callable[[], List[Dict[str, Any]]]


class OptimisticStateController:
    """Ordered entity list plus a ``loading`` flag, kept in sync with the store."""

    def __init__(self, loader: Loader, name: str = "board") -> None:
        self._loader = loader
        self._lock = Lock()
        self._entities: List[Dict[str, Any]] = []
        self._in_flight = 0
        self._closed = False
        self.name = name
        self.loaded = False

    @property
    def entities(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._entities)

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _replace(self, entities: List[Dict[str, Any]]) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._entities = list(entities)
            self.loaded = True
            return True

    def reload(self) -> bool:
        """Fetch the full list and replace the local state wholesale.

        Never raises: a failed fetch is logged and the current state kept.
        Returns whether the state was replaced.
        """
        if self._closed:
            return False
        with self._lock:
            self._in_flight += 1
        try:
            entities = self._loader()
        except Exception:
            logger.exception("Falha ao recarregar %s", self.name)
            return False
        finally:
            with self._lock:
                self._in_flight -= 1
        replaced = self._replace(entities)
        if not replaced:
            logger.debug("Resultado de recarga ignorado para %s (fechado)", self.name)
        return replaced

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.reload()

    def apply_local_update(self, entity: Dict[str, Any], remote_call: Optional[Callable[[], Any]] = None) -> Any:
        """Swap the matching entity in place, then confirm with the store.

        On failure the board is reloaded and the error re-raised to the
        caller's action boundary.
        """
        with self._lock:
            if not self._closed:
                self._entities = [
                    entity if current.get("id") == entity.get("id") else current
                    for current in self._entities
                ]
        return self._confirm(remote_call)

    def apply_local_delete(self, entity_id: Any, remote_call: Optional[Callable[[], Any]] = None) -> Any:
        with self._lock:
            if not self._closed:
                self._entities = [e for e in self._entities if e.get("id") != entity_id]
        return self._confirm(remote_call)

    def apply_local_create(self, entity: Dict[str, Any]) -> None:
        """Insert an entity the store already created (it carries the server id)."""
        if entity.get("id") is None:
            raise ValueError("created entity must carry its store-assigned id")
        with self._lock:
            if not self._closed:
                self._entities = [entity] + [e for e in self._entities if e.get("id") != entity.get("id")]

    def find(self, entity_id: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            for entity in self._entities:
                if entity.get("id") == entity_id:
                    return dict(entity)
        return None

    def _confirm(self, remote_call: Optional[Callable[[], Any]]) -> Any:
        if remote_call is None:
            return None
        try:
            return remote_call()
        except Exception:
            logger.warning("Edição otimista rejeitada em %s; recarregando", self.name)
            self.reload()
            raise

    def close(self) -> None:
        """Stop accepting results; late responses are dropped."""
        with self._lock:
            self._closed = True


class BoardRegistry:
    """One controller per signed-in user, each bound to a change listener."""

    def __init__(self, controller_factory: Callable[[str], OptimisticStateController],
                 listener_factory: Optional[Callable[[OptimisticStateController], Any]] = None) -> None:
        self._controller_factory = controller_factory
        self._listener_factory = listener_factory
        self._lock = Lock()
        self._boards: Dict[str, tuple] = {}

    def get(self, user_id: str) -> OptimisticStateController:
        with self._lock:
            entry = self._boards.get(user_id)
            if entry is not None:
                return entry[0]
            controller = self._controller_factory(user_id)
            listener = None
            if self._listener_factory is not None:
                listener = self._listener_factory(controller)
                listener.bind(user_id)
            self._boards[user_id] = (controller, listener)
        return controller

    def release(self, user_id: Optional[str]) -> None:
        if user_id is None:
            return
        with self._lock:
            entry = self._boards.pop(user_id, None)
        if entry is None:
            return
        controller, listener = entry
        if listener is not None:
            listener.stop()
        controller.close()
        logger.debug("Quadro liberado para %s", user_id)

    def release_all(self) -> None:
        with self._lock:
            user_ids = list(self._boards)
        for user_id in user_ids:
            self.release(user_id)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._boards

    def __len__(self) -> int:
        with self._lock:
            return len(self._boards)
