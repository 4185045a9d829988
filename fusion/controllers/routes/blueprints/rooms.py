"""
Blueprint do catalogo de salas.

Rotas:
    - GET /api/rooms: Lista com filtros do banco e da tela
    - GET /api/rooms/equipments: Equipamentos cadastrados
    - GET /api/rooms/locations: Bairros cadastrados
    - POST /api/rooms/images: Upload paralelo de fotos
    - GET/PATCH/DELETE /api/rooms/<id>: Detalhe, edicao e exclusao
    - POST /api/rooms: Cadastro de sala
    - GET /api/rooms/<id>/share-link: Texto de compartilhamento
"""

from urllib.parse import quote

from flask import Blueprint, jsonify, request, url_for
from flask_login import login_required

from fusion.constants import WHATSAPP_SHARE_TEMPLATE
from fusion.controllers.routes._base import json_payload, validate
from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import RoomForm
from fusion.services import room_service
from fusion.services.filters import filter_rooms, price_label
from fusion.utils.audit import ActionType, ResourceType, log_user_action

rooms_bp = Blueprint('rooms', __name__, url_prefix='/api/rooms')

_ROOM_KEYS = (
    "name", "description", "neighborhood", "address", "referencePoint", "size",
    "modalities", "specialties", "amenities", "equipment", "images",
    "pricePerHour", "pricePerShift", "priceFixed",
    "nightShiftAvailable", "weekendAvailable", "host", "manager",
)


def _flag(name: str) -> bool:
    return request.args.get(name) in ("1", "true", "on")


def _view_criteria() -> dict:
    """Screen-side filters read from the query string."""
    low = request.args.get("minPrice", type=float)
    high = request.args.get("maxPrice", type=float)
    criteria = {
        "query": request.args.get("q", ""),
        "modality": request.args.get("modality"),
        "specialties": request.args.getlist("specialties"),
        "neighborhood": request.args.get("neighborhood"),
        "nightShift": _flag("nightShift"),
        "weekend": _flag("weekend"),
        "amenities": request.args.getlist("amenities"),
    }
    if low is not None or high is not None:
        criteria["priceRange"] = (low or 0, high if high is not None else float("inf"))
    return criteria


def _with_price(room: dict) -> dict:
    return {**room, "priceLabel": price_label(room)["text"]}


@rooms_bp.route("", methods=["GET"])
@login_required
def list_rooms():
    store_filters = {
        key: request.args.get(key)
        for key in ("neighborhood", "modality", "specialty", "equipment")
        if request.args.get(key)
    }
    rooms = room_service.get_rooms(store_filters)
    return jsonify([_with_price(room) for room in filter_rooms(rooms, _view_criteria())])


@rooms_bp.route("/equipments", methods=["GET"])
@login_required
def equipments():
    return jsonify(room_service.get_available_equipments())


@rooms_bp.route("/locations", methods=["GET"])
@login_required
def locations():
    return jsonify(room_service.get_locations())


@rooms_bp.route("/images", methods=["POST"])
@login_required
def upload_images():
    files = [file for file in request.files.getlist("images") if file and file.filename]
    if not files:
        return api_error_response("validation_error", 400, "Nenhuma imagem enviada.")
    urls = room_service.upload_room_images(files)
    log_user_action(ActionType.UPLOAD, ResourceType.FILE, f"{len(urls)} fotos de sala enviadas",
                    new_values={"urls": urls})
    return jsonify({"urls": urls}), 201


@rooms_bp.route("/<room_id>", methods=["GET"])
@login_required
def get_room(room_id):
    return jsonify(_with_price(room_service.get_room(room_id)))


@rooms_bp.route("", methods=["POST"])
@login_required
def create_room():
    payload = json_payload()
    form, error = validate(RoomForm, payload, require_images=True)
    if error:
        return error
    room = room_service.create_room({key: payload[key] for key in _ROOM_KEYS if key in payload})
    log_user_action(ActionType.CREATE, ResourceType.ROOM, f'Sala "{room["name"]}" cadastrada',
                    resource_id=room["id"])
    return jsonify(room), 201


@rooms_bp.route("/<room_id>", methods=["PATCH"])
@login_required
def update_room(room_id):
    payload = json_payload()
    updates = {key: payload[key] for key in _ROOM_KEYS if key in payload}
    # the edited room must still pass the registration rules
    stored = room_service.get_room(room_id)
    merged = {**stored, **updates}
    if isinstance(updates.get("host"), dict):
        merged["host"] = updates["host"] = {**stored["host"], **updates["host"]}
    _, error = validate(RoomForm, merged)
    if error:
        return error
    room_service.update_room(room_id, updates)
    log_user_action(ActionType.UPDATE, ResourceType.ROOM, "Sala editada", resource_id=room_id,
                    new_values={key: str(value) for key, value in updates.items()})
    return jsonify(room_service.get_room(room_id))


@rooms_bp.route("/<room_id>", methods=["DELETE"])
@login_required
def delete_room(room_id):
    room_service.delete_room(room_id)
    log_user_action(ActionType.DELETE, ResourceType.ROOM, "Sala excluída", resource_id=room_id)
    return ("", 204)


@rooms_bp.route("/<room_id>/share-link", methods=["GET"])
@login_required
def share_link(room_id):
    room = room_service.get_room(room_id)
    url = url_for("share.room", room_id=room_id, _external=True)
    text = WHATSAPP_SHARE_TEMPLATE.format(name=room["name"], neighborhood=room["neighborhood"], url=url)
    return jsonify({
        "url": url,
        "text": text,
        "whatsappUrl": f"https://wa.me/?text={quote(text)}",
    })
