"""Inbox notifications: fan-out on task activity, listing and read flags."""

import logging
import os
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from fusion import db
from fusion.extensions.cache import cache
from fusion.models.tables import Notification
from fusion.services.adapters import adapt_notification
from fusion.services.errors import NotFoundError, remote_operation
from fusion.services.realtime import get_broadcaster
from fusion.services.rows import notification_row

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("assignment", "comment", "mention", "update")

ASSIGNMENT_CONTENT = "atribuiu uma tarefa para você"
AUDIO_CONTENT = "enviou um áudio"
ATTACHMENT_CONTENT = "enviou um anexo"
COMMENT_CONTENT = "comentou na tarefa"


def message_content(kind: str) -> str:
    if kind == "audio":
        return AUDIO_CONTENT
    if kind == "image":
        return ATTACHMENT_CONTENT
    return COMMENT_CONTENT


def fan_out(
    recipients: Iterable[str],
    actor_id: Optional[str],
    task_id: Optional[str],
    type: str,
    content: str,
) -> list[str]:
    """Insert one notification per distinct recipient other than the actor.

    Fire-and-forget: a failure is logged and swallowed so the primary write
    that triggered it stays in place. Returns the ids actually notified.
    """
    targets = []
    for recipient in recipients:
        if recipient and recipient != actor_id and recipient not in targets:
            targets.append(recipient)
    if not targets:
        return []

    try:
        for recipient in targets:
            db.session.add(
                Notification(
                    user_id=recipient,
                    from_user_id=actor_id,
                    task_id=task_id,
                    type=type,
                    content=content,
                )
            )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Falha ao notificar %s sobre a tarefa %s: %s", targets, task_id, exc)
        return []

    for recipient in targets:
        cache.delete_memoized(unread_count, recipient)
    return targets


def get_notifications(user_id: str) -> list[dict]:
    notifications = (
        Notification.query.filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc())
        .all()
    )
    return [adapt_notification(notification_row(n)) for n in notifications]


def mark_notification_read(notification_id: str, user_id: Optional[str] = None) -> None:
    """Flip a single notification to read; other rows are untouched."""
    with remote_operation("mark_notification_read"):
        query = Notification.query.filter_by(id=notification_id)
        if user_id is not None:
            query = query.filter_by(user_id=user_id)
        notification = query.first()
        if notification is None:
            raise NotFoundError("notification", notification_id)
        notification.read = True
    cache.delete_memoized(unread_count, notification.user_id)


def mark_all_read(user_id: str) -> int:
    with remote_operation("mark_all_read"):
        unread = Notification.query.filter_by(user_id=user_id, read=False).all()
        for notification in unread:
            notification.read = True
    cache.delete_memoized(unread_count, user_id)
    return len(unread)


@cache.memoize(timeout=int(os.getenv("NOTIFICATION_COUNT_CACHE_TIMEOUT", "60")))
def unread_count(user_id: str) -> int:
    return Notification.query.filter_by(user_id=user_id, read=False).count()


def _invalidate_unread(event) -> None:
    user_id = event.data.get("user_id")
    if user_id:
        cache.delete_memoized(unread_count, user_id)


get_broadcaster().subscribe("notifications", _invalidate_unread)
