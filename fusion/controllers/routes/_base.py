"""Helpers shared by the JSON blueprints."""

from flask import abort, request
from flask_login import current_user

from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import form_errors, json_form
from fusion.services.adapters import adapt_user
from fusion.services.rows import column_row


def json_payload() -> dict:
    """Request body as a dict; anything else is a 400."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        abort(400, description="JSON object expected.")
    return payload


def validate(form_class, payload, **kwargs):
    """Return ``(form, None)`` when valid, else ``(None, error_response)``."""
    form = json_form(form_class, payload, **kwargs)
    if form.validate():
        return form, None
    return None, api_error_response(
        "validation_error",
        400,
        "Verifique os campos destacados.",
        fields=form_errors(form),
    )


def current_user_dict() -> dict:
    """Adapted form of the signed-in profile used by the view filters."""
    return adapt_user(column_row(current_user._get_current_object()))
