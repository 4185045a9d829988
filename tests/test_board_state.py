import pytest

from fusion import app, db
from fusion.models.tables import Task
from fusion.services.board_state import BoardRegistry, OptimisticStateController
from fusion.services.change_listener import ChangeListener
from fusion.services.errors import RemoteOperationError
from fusion.services.realtime import RealtimeBroadcaster, get_broadcaster


class FakeStore:
    """In-memory stand-in for the task table."""

    def __init__(self, rows):
        self.rows = [dict(row) for row in rows]
        self.loads = 0
        self.fail_loads = False

    def load(self):
        self.loads += 1
        if self.fail_loads:
            raise RemoteOperationError("connection refused")
        return [dict(row) for row in self.rows]

    def set(self, task_id, **values):
        for row in self.rows:
            if row["id"] == task_id:
                row.update(values)


def _store():
    return FakeStore([
        {"id": "t1", "name": "Triagem", "status": "pending"},
        {"id": "t2", "name": "Laudos", "status": "working"},
    ])


def test_reload_is_idempotent():
    store = _store()
    board = OptimisticStateController(store.load)

    assert board.reload() is True
    first = board.entities
    assert board.reload() is True
    assert board.entities == first == store.rows
    assert board.loading is False


def test_reload_failure_keeps_state_and_does_not_raise():
    store = _store()
    board = OptimisticStateController(store.load)
    board.reload()

    store.fail_loads = True
    assert board.reload() is False
    assert [t["id"] for t in board.entities] == ["t1", "t2"]


def test_optimistic_update_is_visible_before_confirmation():
    store = _store()
    board = OptimisticStateController(store.load)
    board.reload()
    seen = []

    def remote():
        seen.append(board.find("t1")["status"])
        store.set("t1", status="done")

    board.apply_local_update({"id": "t1", "name": "Triagem", "status": "done"}, remote)

    assert seen == ["done"]
    assert board.find("t1")["status"] == "done"


def test_rejected_update_converges_to_store_state():
    store = _store()
    board = OptimisticStateController(store.load)
    board.reload()

    def rejected():
        raise RemoteOperationError("permission denied", code="42501")

    with pytest.raises(RemoteOperationError):
        board.apply_local_update({"id": "t1", "name": "Triagem", "status": "done"}, rejected)

    assert board.entities == store.rows
    assert board.find("t1")["status"] == "pending"


def test_rejected_delete_restores_entity():
    store = _store()
    board = OptimisticStateController(store.load)
    board.reload()

    def rejected():
        raise RemoteOperationError("fk", code="23503")

    with pytest.raises(RemoteOperationError):
        board.apply_local_delete("t2", rejected)
    assert board.find("t2") is not None


def test_create_inserts_server_entity_at_head():
    board = OptimisticStateController(_store().load)
    board.reload()
    board.apply_local_create({"id": "t9", "name": "Nova"})
    assert [t["id"] for t in board.entities] == ["t9", "t1", "t2"]

    with pytest.raises(ValueError):
        board.apply_local_create({"name": "sem id"})


def test_closed_board_ignores_late_results():
    store = _store()
    board = OptimisticStateController(store.load)
    board.close()
    assert board.reload() is False
    assert board.entities == []


def test_change_during_inflight_edit_converges():
    store = _store()
    broadcaster = RealtimeBroadcaster()
    scheduled = []
    board = OptimisticStateController(store.load)
    listener = ChangeListener(board, tables=["tasks"], broadcaster=broadcaster, dispatch=scheduled.append)
    listener.bind("u1")
    board.reload()

    def remote():
        # Another user renames t2 while our edit is still in flight.
        store.set("t2", name="Laudos revisados")
        broadcaster.broadcast("UPDATE", {"id": "t2"}, scope="tasks")
        store.set("t1", status="stuck")

    board.apply_local_update({"id": "t1", "name": "Triagem", "status": "stuck"}, remote)
    for reload in scheduled:
        reload()

    assert board.entities == store.rows
    listener.stop()


def test_listener_coalesces_and_unsubscribes():
    store = _store()
    broadcaster = RealtimeBroadcaster()
    scheduled = []
    board = OptimisticStateController(store.load)
    listener = ChangeListener(
        board,
        tables=["tasks", "task_owners"],
        user_tables={"notifications": "user_id"},
        broadcaster=broadcaster,
        dispatch=scheduled.append,
    )

    listener.bind("u1")
    listener.bind("u1")
    assert broadcaster.subscription_count() == 3

    broadcaster.broadcast("INSERT", {"id": "t3"}, scope="tasks")
    broadcaster.broadcast("DELETE", {"task_id": "t3"}, scope="task_owners")
    assert len(scheduled) == 1

    scheduled.pop()()
    broadcaster.broadcast("INSERT", {"id": "n1", "user_id": "someone-else"}, scope="notifications")
    assert scheduled == []
    broadcaster.broadcast("INSERT", {"id": "n2", "user_id": "u1"}, scope="notifications")
    assert len(scheduled) == 1

    listener.stop()
    assert broadcaster.subscription_count() == 0
    assert listener.active is False


def test_registry_release_tears_down_listener():
    created = []

    class RecordingListener:
        def __init__(self, controller):
            self.bound_to = None
            self.stopped = False
            created.append(self)

        def bind(self, user_id):
            self.bound_to = user_id

        def stop(self):
            self.stopped = True

    registry = BoardRegistry(lambda user_id: OptimisticStateController(list), RecordingListener)
    board = registry.get("u1")
    assert registry.get("u1") is board
    assert created[0].bound_to == "u1"

    registry.release("u1")
    assert "u1" not in registry
    assert created[0].stopped is True
    assert board.closed is True


def test_commit_publishes_change_and_rollback_does_not():
    events = []
    subscription = get_broadcaster().subscribe("tasks", events.append)
    try:
        with app.app_context():
            task = Task(name="Escala", is_general=True)
            db.session.add(task)
            db.session.commit()
            assert [(e.event_type, e.data["name"]) for e in events] == [("INSERT", "Escala")]

            task.status = "done"
            db.session.flush()
            db.session.rollback()
            assert len(events) == 1

            db.session.delete(db.session.get(Task, task.id))
            db.session.commit()
            assert [e.event_type for e in events] == ["INSERT", "DELETE"]
    finally:
        subscription.unsubscribe()
