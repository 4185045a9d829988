"""
Pagina publica de compartilhamento de sala.

Rotas:
    - GET /share/room/<id>: Detalhes da sala sem login, com contato via WhatsApp
"""

from urllib.parse import quote

from flask import Blueprint, render_template

from fusion.constants import (
    AMENITY_LABELS,
    EQUIPMENT_LABELS,
    MODALITY_LABELS,
    SPECIALTY_LABELS,
    WHATSAPP_CONTACT_TEMPLATE,
)
from fusion.services import room_service
from fusion.services.adapters import digits_only
from fusion.services.filters import price_cards

share_bp = Blueprint('share', __name__, url_prefix='/share')


def whatsapp_link(room: dict) -> str:
    """``wa.me`` deep link to the room manager with the contact message filled in."""
    phone = digits_only((room.get("manager") or {}).get("phone"))
    message = WHATSAPP_CONTACT_TEMPLATE.format(name=room.get("name"))
    return f"https://wa.me/55{phone}?text={quote(message)}"


def _labels(values, labels) -> list[str]:
    return [labels.get(value, value) for value in values or []]


@share_bp.route("/room/<room_id>")
def room(room_id):
    room = room_service.get_room(room_id)
    return render_template(
        "share/room.html",
        room=room,
        prices=price_cards(room),
        modalities=_labels(room["modalities"], MODALITY_LABELS),
        specialties=_labels(room["specialties"], SPECIALTY_LABELS),
        equipment=_labels(room["equipment"], EQUIPMENT_LABELS),
        amenities=_labels(room["amenities"], AMENITY_LABELS),
        whatsapp_url=whatsapp_link(room),
    )
