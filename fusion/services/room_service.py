"""Room catalogue persistence and image uploads."""

import logging
from typing import Any, Mapping, Optional

from fusion import db
from fusion.models.tables import Room
from fusion.services import storage
from fusion.services.adapters import DEFAULT_HOST_NAME, adapt_room
from fusion.services.errors import NotFoundError, remote_operation
from fusion.services.rows import column_row

logger = logging.getLogger(__name__)

ALL_NEIGHBORHOODS = ("all", "Todos")

ROOM_IMAGE_PREFIX = "room-"

_LIST_FIELDS = ("images", "modalities", "specialties", "amenities", "equipment")
_PRICE_FIELDS = (
    ("pricePerHour", "price_per_hour"),
    ("pricePerShift", "price_per_shift"),
    ("priceFixed", "price_fixed"),
)
_PLAIN_FIELDS = (
    ("name", "name"),
    ("description", "description"),
    ("neighborhood", "neighborhood"),
    ("address", "address"),
    ("referencePoint", "reference_point"),
    ("size", "size"),
    ("nightShiftAvailable", "night_shift_available"),
    ("weekendAvailable", "weekend_available"),
)


def _price(value) -> Optional[float]:
    """Falsy or unparsable prices are stored as NULL."""
    if not value:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number or None


def _contact(info: Optional[Mapping[str, Any]]) -> Optional[dict]:
    if not info:
        return None
    return {"name": info.get("name"), "phone": info.get("phone")}


def _get_room(room_id: str) -> Room:
    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFoundError("room", room_id)
    return room


def get_rooms(filters: Optional[Mapping[str, Any]] = None) -> list[dict]:
    """Rooms matching the catalogue filters.

    ``neighborhood`` is an equality filter (skipped for "all"/"Todos");
    ``modality``, ``specialty`` and ``equipment`` require the value to be
    contained in the room's list.
    """
    filters = filters or {}
    query = Room.query
    neighborhood = filters.get("neighborhood")
    if neighborhood and neighborhood not in ALL_NEIGHBORHOODS:
        query = query.filter(Room.neighborhood == neighborhood)

    rooms = query.order_by(Room.created_at.desc()).all()

    # JSON containment differs per backend, so list filters run here.
    for key, attr in (("modality", "modalities"), ("specialty", "specialties"), ("equipment", "equipment")):
        wanted = filters.get(key)
        if wanted:
            rooms = [room for room in rooms if wanted in (getattr(room, attr) or [])]

    return [adapt_room(column_row(room)) for room in rooms]


def get_room(room_id: str) -> dict:
    return adapt_room(column_row(_get_room(room_id)))


def get_available_equipments() -> list[str]:
    values = set()
    for (equipment,) in db.session.query(Room.equipment).all():
        values.update(equipment or [])
    return sorted(values)


def get_locations() -> list[str]:
    rows = db.session.query(Room.neighborhood).distinct().all()
    return sorted({neighborhood for (neighborhood,) in rows if neighborhood})


def create_room(room: Mapping[str, Any]) -> dict:
    host = _contact(room.get("host")) or {"name": DEFAULT_HOST_NAME, "phone": ""}
    manager = _contact(room.get("manager")) or dict(host)
    with remote_operation("create_room"):
        row = Room(
            name=room.get("name"),
            description=room.get("description") or "",
            neighborhood=room.get("neighborhood") or "",
            address=room.get("address") or "",
            reference_point=room.get("referencePoint"),
            size=room.get("size") or 0,
            night_shift_available=bool(room.get("nightShiftAvailable")),
            weekend_available=bool(room.get("weekendAvailable")),
            host_info=host,
            manager_info=manager,
            **{field: list(room.get(field) or []) for field in _LIST_FIELDS},
            **{column: _price(room.get(key)) for key, column in _PRICE_FIELDS},
        )
        db.session.add(row)
    logger.info("Sala %s criada", row.id)
    return adapt_room(column_row(row))


def update_room(room_id: str, updates: Mapping[str, Any]) -> None:
    """Sparse update: keys absent from ``updates`` are left untouched.

    A price key that is present but falsy clears that price.
    """
    with remote_operation("update_room"):
        room = _get_room(room_id)
        for key, column in _PLAIN_FIELDS:
            if key in updates:
                setattr(room, column, updates[key])
        for field in _LIST_FIELDS:
            if field in updates:
                setattr(room, field, list(updates[field] or []))
        for key, column in _PRICE_FIELDS:
            if key in updates:
                setattr(room, column, _price(updates[key]))
        if updates.get("host"):
            room.host_info = _contact(updates["host"])
        if updates.get("manager"):
            room.manager_info = _contact(updates["manager"])


def delete_room(room_id: str) -> None:
    with remote_operation("delete_room"):
        db.session.delete(_get_room(room_id))


def upload_room_image(file) -> str:
    return storage.save_upload(file, prefix=ROOM_IMAGE_PREFIX)


def upload_room_images(files) -> list[str]:
    """Upload concurrently; URLs are returned in the order uploads finish."""
    return storage.save_uploads_parallel(files, prefix=ROOM_IMAGE_PREFIX)
