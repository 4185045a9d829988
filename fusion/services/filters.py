"""View-level filtering and grouping of already-fetched view models."""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from fusion.constants import DEFAULT_PRICE_RANGE, EQUIPMENT_LABELS, KANBAN_COLUMNS

ALL_MODALITIES = "all"
ALL_NEIGHBORHOODS = "Todos"


def _role(user: Mapping[str, Any]) -> str:
    return user.get("role") or "membro"


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


# -----------------------------------------------------------------------------
# Visibility
# -----------------------------------------------------------------------------

def filter_tasks_for_user(tasks: Iterable[dict], user: Mapping[str, Any]) -> list[dict]:
    """Managers see everything; members see their team, general work and their own."""
    tasks = list(tasks)
    if _role(user) == "gestor":
        return tasks
    user_id = user.get("id")
    team_id = user.get("teamId")
    return [
        task for task in tasks
        if (team_id and task.get("teamId") == team_id)
        or task.get("isGeneral")
        or any(owner.get("id") == user_id for owner in task.get("owners") or [])
    ]


def filter_teams_for_user(teams: Iterable[dict], user: Mapping[str, Any]) -> list[dict]:
    teams = list(teams)
    if _role(user) == "gestor":
        return teams
    return [team for team in teams if team.get("id") == user.get("teamId")]


def filter_events_for_user(events: Iterable[dict], user: Mapping[str, Any]) -> list[dict]:
    events = list(events)
    if _role(user) == "gestor":
        return events
    user_id = user.get("id")
    team_id = user.get("teamId")
    return [
        event for event in events
        if event.get("isGeneral")
        or (team_id and event.get("teamId") == team_id)
        or (event.get("createdBy") or {}).get("id") == user_id
        or any(p.get("id") == user_id for p in event.get("participants") or [])
    ]


# -----------------------------------------------------------------------------
# Task boards
# -----------------------------------------------------------------------------

def split_table(tasks: Iterable[dict]) -> dict:
    tasks = list(tasks)
    return {
        "active": [t for t in tasks if t.get("status") != "done"],
        "completed": [t for t in tasks if t.get("status") == "done"],
    }


def group_kanban(tasks: Iterable[dict]) -> "OrderedDict[str, list[dict]]":
    columns: OrderedDict[str, list[dict]] = OrderedDict((status, []) for status in KANBAN_COLUMNS)
    for task in tasks:
        if task.get("status") in columns:
            columns[task["status"]].append(task)
    return columns


def group_calendar(tasks: Iterable[dict]) -> dict[str, list[dict]]:
    """Tasks keyed by ISO due date, dates in ascending order."""
    days: dict[str, list[dict]] = {}
    for task in tasks:
        due = _as_date(task.get("dueDate"))
        if due is None:
            continue
        days.setdefault(due.isoformat(), []).append(task)
    return dict(sorted(days.items()))


def _week_bounds(today: date) -> tuple[date, date]:
    # Weeks start on Sunday.
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def my_tasks(tasks: Iterable[dict], user: Mapping[str, Any], today: Optional[date] = None) -> dict:
    """Bucket the user's own tasks the way the "Minhas tarefas" page shows them."""
    today = today or date.today()
    week_start, week_end = _week_bounds(today)
    user_id = user.get("id")
    mine = [
        task for task in tasks
        if any(owner.get("id") == user_id for owner in task.get("owners") or [])
    ]

    buckets = {"general": [], "overdue": [], "today": [], "thisWeek": [], "completed": []}
    for task in mine:
        if task.get("status") == "done":
            buckets["completed"].append(task)
            continue
        if task.get("isGeneral"):
            buckets["general"].append(task)
            continue
        due = _as_date(task.get("dueDate"))
        if due is None:
            continue
        if due < today:
            buckets["overdue"].append(task)
        elif due == today:
            buckets["today"].append(task)
        elif week_start <= due <= week_end:
            buckets["thisWeek"].append(task)
    return buckets


# -----------------------------------------------------------------------------
# Inbox
# -----------------------------------------------------------------------------

def filter_inbox(items: Iterable[dict], only_unread: bool = False) -> list[dict]:
    items = list(items)
    if not only_unread:
        return items
    return [item for item in items if not item.get("read")]


def unread_total(items: Iterable[dict]) -> int:
    return sum(1 for item in items if not item.get("read"))


# -----------------------------------------------------------------------------
# Rooms
# -----------------------------------------------------------------------------

def _matches_query(room: Mapping[str, Any], query: str) -> bool:
    query = query.lower()
    for equipment in room.get("equipment") or []:
        label = EQUIPMENT_LABELS.get(equipment, "")
        if query in label.lower() or query in equipment.lower():
            return True
    return query in (room.get("name") or "").lower() or query in (room.get("description") or "").lower()


def filter_rooms(rooms: Iterable[dict], criteria: Optional[Mapping[str, Any]] = None) -> list[dict]:
    """Apply the "Encontre uma Sala" filters to adapted rooms.

    Recognised criteria: ``query``, ``modality``, ``specialties`` (any of),
    ``neighborhood``, ``nightShift``, ``weekend``, ``priceRange`` (on the
    hourly price, missing price counts as 0) and ``amenities`` (all of).
    """
    criteria = criteria or {}
    query = (criteria.get("query") or "").strip()
    modality = criteria.get("modality") or ALL_MODALITIES
    specialties = list(criteria.get("specialties") or [])
    neighborhood = criteria.get("neighborhood") or ALL_NEIGHBORHOODS
    night_shift = bool(criteria.get("nightShift"))
    weekend = bool(criteria.get("weekend"))
    low, high = criteria.get("priceRange") or DEFAULT_PRICE_RANGE
    amenities = list(criteria.get("amenities") or [])

    result = []
    for room in rooms:
        if query and not _matches_query(room, query):
            continue
        if modality != ALL_MODALITIES and modality not in (room.get("modalities") or []):
            continue
        if specialties and not any(s in (room.get("specialties") or []) for s in specialties):
            continue
        if neighborhood != ALL_NEIGHBORHOODS and room.get("neighborhood") != neighborhood:
            continue
        if night_shift and not room.get("nightShiftAvailable"):
            continue
        if weekend and not room.get("weekendAvailable"):
            continue
        price = room.get("pricePerHour") or 0
        if price < low or price > high:
            continue
        if amenities and not all(a in (room.get("amenities") or []) for a in amenities):
            continue
        result.append(room)
    return result


def format_amount(value) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.2f}".replace(".", ",")


_PRICE_ORDER = (
    ("pricePerHour", "/h", "/ Hora"),
    ("pricePerShift", "/turno", "/ Turno"),
    ("priceFixed", "/mês", "/ Mês"),
)


def price_label(room: Mapping[str, Any]) -> dict:
    """The single headline price: first present of hourly, shift, monthly."""
    for key, suffix, _ in _PRICE_ORDER:
        if room.get(key):
            amount = format_amount(room[key])
            return {"amount": room[key], "suffix": suffix, "text": f"R$ {amount}{suffix}"}
    return {"amount": None, "suffix": "", "text": "Sob consulta"}


def price_cards(room: Mapping[str, Any]) -> list[dict]:
    return [
        {"key": key, "amount": room[key], "display": f"R$ {format_amount(room[key])}", "label": label}
        for key, _, label in _PRICE_ORDER
        if room.get(key)
    ]
