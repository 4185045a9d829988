"""Helpers for the team calendar events."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

from fusion import db
from fusion.models.tables import CalendarEvent, EventParticipant
from fusion.services.adapters import GENERAL_TEAM, adapt_event
from fusion.services.errors import NotFoundError, remote_operation
from fusion.services.rows import event_row

EVENT_TYPES = ("reuniao", "evento", "saude")


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


def _participant_ids(participants) -> list[str]:
    ids: list[str] = []
    for participant in participants or []:
        pid = participant.get("id") if isinstance(participant, Mapping) else participant
        if pid and pid not in ids:
            ids.append(pid)
    return ids


def _get_event(event_id: str) -> CalendarEvent:
    event = db.session.get(CalendarEvent, event_id)
    if event is None:
        raise NotFoundError("event", event_id)
    return event


def get_events(user=None) -> list[dict]:
    """Every event ordered by date; visibility is a view-level filter."""
    events = CalendarEvent.query.order_by(
        CalendarEvent.date.asc(), CalendarEvent.start_time.asc()
    ).all()
    return [adapt_event(event_row(event)) for event in events]


def create_event(event: Mapping[str, Any], creator_id: str) -> dict:
    """Insert the event, then its participant links in a second step."""
    team_id = event.get("teamId")
    is_general = bool(event.get("isGeneral")) or not team_id or team_id == GENERAL_TEAM
    with remote_operation("create_event"):
        row = CalendarEvent(
            title=event.get("title"),
            type=event.get("type") or "reuniao",
            date=_parse_date(event.get("date")),
            start_time=event.get("startTime") or None,
            end_time=event.get("endTime") or None,
            description=event.get("description"),
            location=event.get("location"),
            team_id=None if is_general else team_id,
            is_general=is_general,
            created_by=creator_id,
        )
        db.session.add(row)
    event_id = row.id

    participant_ids = _participant_ids(event.get("participants"))
    if participant_ids:
        with remote_operation("create_event.participants"):
            for user_id in participant_ids:
                db.session.add(EventParticipant(event_id=event_id, user_id=user_id))

    return adapt_event(event_row(_get_event(event_id)))


def update_event(event_id: str, updates: Mapping[str, Any]) -> None:
    with remote_operation("update_event"):
        event = _get_event(event_id)
        for key, attr in (
            ("title", "title"),
            ("type", "type"),
            ("startTime", "start_time"),
            ("endTime", "end_time"),
            ("description", "description"),
            ("location", "location"),
        ):
            if key in updates and updates[key] is not None:
                setattr(event, attr, updates[key])
        if updates.get("date"):
            event.date = _parse_date(updates["date"])
        if updates.get("teamId"):
            general = updates["teamId"] == GENERAL_TEAM
            event.team_id = None if general else updates["teamId"]
            event.is_general = general
        if "participants" in updates and updates["participants"] is not None:
            wanted = _participant_ids(updates["participants"])
            for link in list(event.participant_links):
                if link.user_id not in wanted:
                    event.participant_links.remove(link)
            current = {link.user_id for link in event.participant_links}
            for user_id in wanted:
                if user_id not in current:
                    event.participant_links.append(EventParticipant(user_id=user_id))


def delete_event(event_id: str) -> None:
    with remote_operation("delete_event"):
        db.session.delete(_get_event(event_id))
