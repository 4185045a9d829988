"""Publish committed row changes to the realtime broadcaster.

Changes are collected per session on flush and only published once the
transaction commits, so listeners never see rows that were rolled back.
"""

import logging
from datetime import date, datetime

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from fusion.services.realtime import get_broadcaster

logger = logging.getLogger(__name__)

_PENDING_KEY = "fusion_pending_changes"

# SSE delivery of these tables is limited to the row owner.
_USER_SCOPED_TABLES = {"notifications": "user_id"}

_PRIVATE_COLUMNS = {"password_hash"}


def _snapshot(obj) -> dict:
    """Column values already loaded on ``obj``; never emits SQL."""
    state = inspect(obj)
    row = {}
    for attr in state.mapper.column_attrs:
        if attr.key in _PRIVATE_COLUMNS:
            continue
        value = state.dict.get(attr.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, list):
            value = list(value)
        elif isinstance(value, dict):
            value = dict(value)
        row[attr.key] = value
    return row


def _table_name(obj):
    return getattr(type(obj), "__tablename__", None)


@event.listens_for(Session, "after_flush")
def _collect_changes(session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for change_type, objects in (
        ("INSERT", session.new),
        ("UPDATE", session.dirty),
        ("DELETE", session.deleted),
    ):
        for obj in objects:
            table = _table_name(obj)
            if not table:
                continue
            if change_type == "UPDATE" and not session.is_modified(obj, include_collections=False):
                continue
            pending.append((table, change_type, _snapshot(obj)))


@event.listens_for(Session, "after_commit")
def _publish_changes(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    broadcaster = get_broadcaster()
    for table, change_type, row in pending:
        logger.debug("change feed: %s %s %s", change_type, table, row.get("id"))
        owner_column = _USER_SCOPED_TABLES.get(table)
        broadcaster.broadcast(
            change_type,
            row,
            scope=table,
            user_id=row.get(owner_column) if owner_column else None,
        )


@event.listens_for(Session, "after_rollback")
def _discard_changes(session):
    session.info.pop(_PENDING_KEY, None)
