"""Turn ORM instances into the plain row mappings the adapters consume."""

from sqlalchemy import inspect


def column_row(obj) -> dict:
    if obj is None:
        return {}
    mapper = inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


def task_row(task) -> dict:
    row = column_row(task)
    row["task_owners"] = [
        {"profiles": column_row(link.profile)}
        for link in task.owner_links
        if link.profile is not None
    ]
    row["task_messages"] = [column_row(message) for message in task.messages]
    return row


def notification_row(notification) -> dict:
    row = column_row(notification)
    row["tasks"] = {"name": notification.task.name} if notification.task else None
    row["profiles"] = column_row(notification.from_user) if notification.from_user else None
    return row


def event_row(event) -> dict:
    row = column_row(event)
    row["created_by_profile"] = column_row(event.creator) if event.creator else None
    row["event_participants"] = [
        {"profiles": column_row(link.profile)}
        for link in event.participant_links
        if link.profile is not None
    ]
    return row
