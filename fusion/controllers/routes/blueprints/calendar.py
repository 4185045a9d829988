"""
Blueprint do calendario de eventos.

Rotas:
    - GET/POST /api/calendar/events: Lista (filtrada) e cria eventos
    - PATCH/DELETE /api/calendar/events/<id>: Edicao parcial e exclusao
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from fusion.controllers.routes._base import current_user_dict, json_payload, validate
from fusion.forms import EventForm, EventUpdateForm
from fusion.services import calendar_service
from fusion.services.filters import filter_events_for_user
from fusion.utils.audit import ActionType, ResourceType, log_user_action

calendar_bp = Blueprint('calendar', __name__, url_prefix='/api/calendar')

_EDITABLE = ("title", "type", "date", "startTime", "endTime", "description",
             "location", "teamId", "isGeneral", "participants")


@calendar_bp.route("/events", methods=["GET"])
@login_required
def list_events():
    events = calendar_service.get_events(current_user.id)
    return jsonify(filter_events_for_user(events, current_user_dict()))


@calendar_bp.route("/events", methods=["POST"])
@login_required
def create_event():
    form, error = validate(EventForm, json_payload())
    if error:
        return error
    event = calendar_service.create_event(
        {
            "title": form.title.data,
            "type": form.type.data,
            "date": form.date.data,
            "startTime": form.startTime.data,
            "endTime": form.endTime.data,
            "description": form.description.data,
            "location": form.location.data,
            "teamId": form.teamId.data,
            "isGeneral": form.isGeneral.data,
            "participants": form.participants.data,
        },
        current_user.id,
    )
    log_user_action(ActionType.CREATE, ResourceType.EVENT, f'Evento "{event["title"]}" criado',
                    resource_id=event["id"])
    return jsonify(event), 201


@calendar_bp.route("/events/<event_id>", methods=["PATCH"])
@login_required
def update_event(event_id):
    payload = json_payload()
    form, error = validate(EventUpdateForm, payload)
    if error:
        return error
    updates = {key: payload[key] for key in _EDITABLE if key in payload}
    if form.date.data:
        updates["date"] = form.date.data
    calendar_service.update_event(event_id, updates)
    log_user_action(ActionType.UPDATE, ResourceType.EVENT, "Evento editado", resource_id=event_id)
    return ("", 204)


@calendar_bp.route("/events/<event_id>", methods=["DELETE"])
@login_required
def delete_event(event_id):
    calendar_service.delete_event(event_id)
    log_user_action(ActionType.DELETE, ResourceType.EVENT, "Evento excluído", resource_id=event_id)
    return ("", 204)
