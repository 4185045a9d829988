"""
Blueprint de verificacao de saude.

Rotas:
    - GET /ping: Renova a sessao do navegador (204) ou 401 sem login
    - GET /health: Estado do banco e clientes conectados ao stream
"""

from flask import Blueprint, jsonify, session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fusion import db, limiter
from fusion.services.realtime import get_broadcaster

health_bp = Blueprint('health', __name__)


@health_bp.route("/ping")
@limiter.exempt
def ping():
    """Keep-alive sem ORM; so toca no cookie de sessao."""
    if "_user_id" not in session:
        return ("", 401)
    session.modified = True
    return ("", 204)


@health_bp.route("/health")
@limiter.exempt
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        db.session.rollback()
        database = "unavailable"
    body = {"database": database, "streams": get_broadcaster().get_client_count()}
    return jsonify(body), 200 if database == "ok" else 503
