"""Map stored rows (snake_case mappings) to the camelCase view models.

Every function here is pure: it takes a row as returned by the data access
layer, optionally with related rows nested under the relation name, and
returns a new dict. Nothing here touches the database.
"""

import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

DEFAULT_AVATAR = "/placeholder-user.jpg"
UNKNOWN_TASK_NAME = "Tarefa desconhecida"
DEFAULT_HOST_NAME = "Fusion Clinic"
GENERAL_TEAM = "general"

SYSTEM_USER = {
    "id": "system",
    "name": "Sistema",
    "avatar": DEFAULT_AVATAR,
    "email": "system@app.com",
    "role": "gestor",
    "teamId": "",
}


def _iso(value) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def adapt_user(row: Mapping[str, Any]) -> dict:
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "avatar": row.get("avatar_url") or DEFAULT_AVATAR,
        "email": row.get("email") or "",
        "role": row.get("role") or "membro",
        "teamId": row.get("team_id"),
    }


def adapt_message(row: Mapping[str, Any]) -> dict:
    kind = row.get("type")
    return {
        "id": row.get("id"),
        "userId": row.get("user_id"),
        "content": row.get("content"),
        "timestamp": _iso(row.get("created_at")),
        "type": kind,
        "audioUrl": row.get("media_url") if kind == "audio" else None,
        "imageUrl": row.get("media_url") if kind == "image" else None,
    }


def adapt_task(row: Mapping[str, Any]) -> dict:
    """Task view model; ``teamId`` is ``"general"`` for company-wide tasks."""
    is_general = bool(row.get("is_general"))
    team_id = row.get("team_id") or (GENERAL_TEAM if is_general else "")
    owners = [
        adapt_user(link["profiles"])
        for link in row.get("task_owners") or []
        if link.get("profiles")
    ]
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "description": row.get("description") or "",
        "status": row.get("status"),
        "priority": row.get("priority"),
        "dueDate": _iso(row.get("due_date")),
        "teamId": team_id,
        "isGeneral": is_general,
        "createdBy": row.get("created_by"),
        "createdAt": _iso(row.get("created_at")),
        "owners": owners,
        "messages": [adapt_message(message) for message in row.get("task_messages") or []],
    }


def adapt_team(row: Mapping[str, Any], profiles=()) -> dict:
    """Team with its derived member list.

    Members are the profiles pointing at the team (managers excluded) followed
    by every manager, deduplicated by id.
    """
    users = [adapt_user(profile) for profile in profiles]
    regular = [u for u in users if u["teamId"] == row.get("id") and u["role"] != "gestor"]
    managers = [u for u in users if u["role"] == "gestor"]

    members = {}
    for user in regular + managers:
        members.setdefault(user["id"], user)

    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "description": row.get("description"),
        "members": list(members.values()),
        "projectCount": 0,
    }


def _adapt_contact(info: Optional[Mapping[str, Any]], default_name: str = "") -> dict:
    info = info or {}
    phone = info.get("phone") or ""
    return {
        "id": "sys",
        "name": info.get("name") or default_name,
        "avatar": DEFAULT_AVATAR,
        "phone": phone,
        "whatsapp": digits_only(phone),
    }


def adapt_room(row: Mapping[str, Any]) -> dict:
    host = _adapt_contact(row.get("host_info"), DEFAULT_HOST_NAME)
    manager_info = row.get("manager_info")
    manager = _adapt_contact(manager_info, host["name"]) if manager_info else dict(host)
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "description": row.get("description"),
        "images": list(row.get("images") or []),
        "neighborhood": row.get("neighborhood"),
        "address": row.get("address"),
        "referencePoint": row.get("reference_point"),
        "size": row.get("size"),
        "modalities": list(row.get("modalities") or []),
        "specialties": list(row.get("specialties") or []),
        "amenities": list(row.get("amenities") or []),
        "equipment": list(row.get("equipment") or []),
        "pricePerHour": row.get("price_per_hour"),
        "pricePerShift": row.get("price_per_shift"),
        "priceFixed": row.get("price_fixed"),
        "nightShiftAvailable": bool(row.get("night_shift_available")),
        "weekendAvailable": bool(row.get("weekend_available")),
        "host": host,
        "manager": manager,
    }


def adapt_notification(row: Mapping[str, Any]) -> dict:
    task = row.get("tasks") or {}
    sender = row.get("profiles") if row.get("from_user_id") else None
    return {
        "id": row.get("id"),
        "type": row.get("type"),
        "taskId": row.get("task_id"),
        "taskName": task.get("name") or UNKNOWN_TASK_NAME,
        "fromUser": {
            "id": sender.get("id"),
            "name": sender.get("name"),
            "avatar": sender.get("avatar_url") or DEFAULT_AVATAR,
        } if sender else None,
        "content": row.get("content"),
        "timestamp": _iso(row.get("created_at")),
        "read": bool(row.get("read")),
    }


def adapt_event(row: Mapping[str, Any]) -> dict:
    creator_row = row.get("created_by_profile")
    if creator_row:
        creator = adapt_user(creator_row)
        creator["teamId"] = creator["teamId"] or ""
    else:
        creator = dict(SYSTEM_USER)

    participants = []
    for link in row.get("event_participants") or []:
        profile = link.get("profiles")
        if profile:
            user = adapt_user(profile)
            user["teamId"] = user["teamId"] or ""
            participants.append(user)

    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "type": row.get("type"),
        "date": _iso(row.get("date")),
        "startTime": row.get("start_time"),
        "endTime": row.get("end_time"),
        "description": row.get("description"),
        "location": row.get("location"),
        "teamId": row.get("team_id"),
        "isGeneral": bool(row.get("is_general")),
        "createdBy": creator,
        "participants": participants,
    }
