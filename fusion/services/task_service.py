"""Task persistence: listing, creation with owner fan-out, edits and messages."""

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional

from fusion import db
from fusion.models.tables import Task, TaskMessage, TaskOwner
from fusion.services import notification_service, storage
from fusion.services.adapters import GENERAL_TEAM, adapt_message, adapt_task
from fusion.services.errors import NotFoundError, remote_operation
from fusion.services.rows import column_row, task_row

logger = logging.getLogger(__name__)

TASK_STATUSES = ("pending", "working", "stuck", "done")
TASK_PRIORITIES = ("high", "medium", "low")
MESSAGE_TYPES = ("text", "audio", "image")


def _parse_date(value) -> Optional[date]:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return datetime.fromisoformat(str(value)[:10]).date()


def _owner_id(owner) -> Optional[str]:
    if isinstance(owner, Mapping):
        return owner.get("id")
    return owner


def _team_scope(team_id: Optional[str]) -> tuple[Optional[str], bool]:
    """Resolve the (team_id, is_general) pair; exactly one side is meaningful.

    A missing team falls back to the company-wide scope.
    """
    if not team_id or team_id == GENERAL_TEAM:
        return None, True
    return team_id, False


def _get_task(task_id: str) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError("task", task_id)
    return task


def list_tasks(user=None) -> list[dict]:
    """All tasks newest-first with owners and messages attached.

    ``user`` is accepted for parity with the view filters; visibility is
    applied by :func:`fusion.services.filters.filter_tasks_for_user`.
    """
    tasks = Task.query.order_by(Task.created_at.desc()).all()
    return [adapt_task(task_row(task)) for task in tasks]


def get_task(task_id: str) -> dict:
    return adapt_task(task_row(_get_task(task_id)))


def create_task(task: Mapping[str, Any], creator_id: str) -> dict:
    """Insert the task, then its owners, then notify every owner but the creator.

    The three steps commit separately. If the owner insert fails the task row
    stays behind without owners; notification failures are only logged.
    """
    team_id, is_general = _team_scope(task.get("teamId"))
    with remote_operation("create_task"):
        row = Task(
            name=task.get("name"),
            description=task.get("description"),
            status=task.get("status") or "pending",
            priority=task.get("priority") or "medium",
            due_date=_parse_date(task.get("dueDate")),
            team_id=team_id,
            is_general=is_general,
            created_by=creator_id,
        )
        db.session.add(row)
    created = column_row(row)

    owner_ids = []
    for owner in task.get("owners") or []:
        owner_id = _owner_id(owner)
        if owner_id and owner_id not in owner_ids:
            owner_ids.append(owner_id)

    if owner_ids:
        with remote_operation("create_task.owners"):
            for owner_id in owner_ids:
                db.session.add(TaskOwner(task_id=created["id"], user_id=owner_id))

        notification_service.fan_out(
            owner_ids,
            creator_id,
            created["id"],
            "assignment",
            notification_service.ASSIGNMENT_CONTENT,
        )

    logger.info("Tarefa %s criada por %s", created["id"], creator_id)
    return adapt_task({**created, "task_owners": [], "task_messages": []})


def update_status(task_id: str, status: str) -> None:
    with remote_operation("update_status"):
        _get_task(task_id).status = status


def update_priority(task_id: str, priority: str) -> None:
    with remote_operation("update_priority"):
        _get_task(task_id).priority = priority


def update_task(task_id: str, updates: Mapping[str, Any]) -> None:
    """Sparse update; only keys present with a value are written."""
    with remote_operation("update_task"):
        task = _get_task(task_id)
        if updates.get("name"):
            task.name = updates["name"]
        if updates.get("description"):
            task.description = updates["description"]
        if updates.get("dueDate"):
            task.due_date = _parse_date(updates["dueDate"])
        if updates.get("priority"):
            task.priority = updates["priority"]
        if updates.get("status"):
            task.status = updates["status"]
        if updates.get("teamId"):
            task.team_id, task.is_general = _team_scope(updates["teamId"])


def delete_task(task_id: str) -> None:
    """Delete unconditionally; owners, messages and notifications cascade."""
    with remote_operation("delete_task"):
        db.session.delete(_get_task(task_id))


def add_message(
    task_id: str,
    user_id: str,
    content: str,
    kind: str = "text",
    media_url: Optional[str] = None,
) -> dict:
    with remote_operation("add_message"):
        message = TaskMessage(
            task_id=task_id,
            user_id=user_id,
            content=content or "",
            type=kind,
            media_url=media_url,
        )
        db.session.add(message)
    created = column_row(message)

    owner_ids = [
        link.user_id for link in TaskOwner.query.filter_by(task_id=task_id).all()
    ]
    notification_service.fan_out(
        owner_ids,
        user_id,
        task_id,
        "comment",
        notification_service.message_content(kind),
    )
    return adapt_message(created)


def upload_file(file) -> str:
    return storage.save_upload(file)
