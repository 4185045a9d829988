"""
Blueprint da caixa de entrada.

Rotas:
    - GET /api/notifications: Lista notificacoes (``?unread=1`` so nao lidas)
    - GET /api/notifications/unread-count: Contador de nao lidas
    - POST /api/notifications/<id>/read: Marca uma notificacao como lida
    - POST /api/notifications/read-all: Marca todas como lidas
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from fusion.services import notification_service
from fusion.services.filters import filter_inbox, unread_total
from fusion.utils.audit import ActionType, ResourceType, log_user_action

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


@notifications_bp.route("", methods=["GET"])
@login_required
def list_notifications():
    items = notification_service.get_notifications(current_user.id)
    only_unread = request.args.get("unread") in ("1", "true")
    return jsonify({
        "items": filter_inbox(items, only_unread=only_unread),
        "unread": unread_total(items),
    })


@notifications_bp.route("/unread-count", methods=["GET"])
@login_required
def unread_count():
    return jsonify({"unread": notification_service.unread_count(current_user.id)})


@notifications_bp.route("/<notification_id>/read", methods=["POST"])
@login_required
def mark_read(notification_id):
    notification_service.mark_notification_read(notification_id, current_user.id)
    return jsonify({"success": True, "unread": notification_service.unread_count(current_user.id)})


@notifications_bp.route("/read-all", methods=["POST"])
@login_required
def mark_all_read():
    updated = notification_service.mark_all_read(current_user.id)
    log_user_action(ActionType.MARK_READ, ResourceType.NOTIFICATION,
                    f"{updated} notificacoes marcadas como lidas")
    return jsonify({"success": True, "updated": updated})
