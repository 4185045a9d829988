"""
Blueprint do stream de alteracoes em tempo real.

Rotas:
    - GET /realtime/stream?tables=tasks,notifications: Server-Sent Events
"""

from typing import Any

from flask import Blueprint, Response, current_app, request, stream_with_context
from flask_login import current_user, login_required

from fusion import db, limiter
from fusion.services.realtime import get_broadcaster

realtime_bp = Blueprint('realtime', __name__)


@realtime_bp.route("/realtime/stream")
@login_required
@limiter.exempt
def realtime_stream():
    """
    Server-Sent Events com as alteracoes das tabelas pedidas.

    ``tables`` lista as tabelas de interesse (padrao: todas). Eventos de
    ``notifications`` so chegam ao dono da linha.
    """
    tables_param = request.args.get("tables", "all")
    subscribed_scopes = {s.strip() for s in tables_param.split(",") if s.strip()} or {"all"}

    user_id = current_user.id

    # The stream is long-lived; hand the connection back to the pool first.
    db.session.remove()

    broadcaster = get_broadcaster()
    client_id = broadcaster.register_client(user_id, subscribed_scopes)
    heartbeat_interval = current_app.config.get("REALTIME_HEARTBEAT_INTERVAL", 10)

    def event_stream() -> Any:
        try:
            last_event_id = 0
            while True:
                events = broadcaster.get_events(user_id, client_id, since_id=last_event_id)

                if events:
                    for event in events:
                        yield event.to_sse()
                        last_event_id = max(last_event_id, event.id)
                    continue

                triggered = broadcaster.wait_for_events(
                    user_id,
                    client_id,
                    timeout=heartbeat_interval,
                )
                if not triggered:
                    # evicted by the connection limit
                    if not broadcaster.is_registered(user_id, client_id):
                        break
                    yield ": keep-alive\n\n"
        finally:
            broadcaster.unregister_client(user_id, client_id)

    response = Response(
        stream_with_context(event_stream()),
        mimetype="text/event-stream",
    )
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
