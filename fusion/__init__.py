"""Flask application for the Fusion workspace (tasks, inbox, teams and rooms)."""

import os
import time
import logging
import secrets
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from flask import Flask, request, redirect, g
from flask_login import LoginManager, current_user
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect
from flask_compress import Compress
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dotenv import load_dotenv

from fusion.extensions.cache import cache, init_cache

load_dotenv()

SAO_PAULO_TZ = ZoneInfo("America/Sao_Paulo")

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'geolocation=(), camera=()',
    # share pages show room photos and task audio from the storage host
    'Content-Security-Policy': (
        "default-src 'self'; img-src 'self' data: https:; media-src 'self' https:; "
        "style-src 'self' 'unsafe-inline'; frame-ancestors 'none'; object-src 'none'"
    ),
}


def _database_uri(instance_path: str) -> str:
    """``DATABASE_URL`` wins; then MySQL from ``DB_*``; then a local SQLite file."""
    if os.getenv('DATABASE_URL'):
        return os.environ['DATABASE_URL']

    parts = {name: os.getenv(name) for name in ('DB_USER', 'DB_PASSWORD', 'DB_HOST', 'DB_NAME')}
    missing = [name for name, value in parts.items() if value is None]
    if missing:
        logger.warning("Banco não configurado (%s ausentes); usando SQLite local.", ", ".join(missing))
        os.makedirs(instance_path, exist_ok=True)
        return "sqlite:///" + os.path.join(instance_path, 'fusion.db')
    return "mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}/{DB_NAME}".format(**parts)


def _env_flag(name: str, default: str = '0') -> bool:
    return os.getenv(name, default) == '1'


app = Flask(__name__)

secret_key = os.getenv("SECRET_KEY")
if not secret_key:
    logger.warning("SECRET_KEY não definida; sessões não sobrevivem a reinícios.")
    secret_key = secrets.token_urlsafe(32)

https_only = _env_flag('ENFORCE_HTTPS')
app.config.update(
    SECRET_KEY=secret_key,
    SQLALCHEMY_DATABASE_URI=_database_uri(app.instance_path),
    SQLALCHEMY_TRACK_MODIFICATIONS=False,
    MAX_CONTENT_LENGTH=int(os.getenv('MAX_UPLOAD_MB', '50')) * 1024 * 1024,
    UPLOAD_FOLDER=os.getenv('UPLOAD_FOLDER') or os.path.join(app.instance_path, 'attachments'),
    PUBLIC_BASE_URL=(os.getenv('PUBLIC_BASE_URL') or '').rstrip('/'),
    ENFORCE_HTTPS=https_only,
    SESSION_COOKIE_NAME=os.getenv('SESSION_COOKIE_NAME', 'fusion_session'),
    SESSION_COOKIE_SECURE=https_only,
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE='Lax',
    REMEMBER_COOKIE_SECURE=https_only,
    REMEMBER_COOKIE_DURATION=timedelta(days=30),
    PERMANENT_SESSION_LIFETIME=timedelta(days=30),
    WTF_CSRF_ENABLED=_env_flag('WTF_CSRF_ENABLED', '1'),
    WTF_CSRF_TIME_LIMIT=24 * 60 * 60,
    RATELIMIT_ENABLED=_env_flag('RATELIMIT_ENABLED', '1'),
    NOTIFICATION_COUNT_CACHE_TIMEOUT=int(os.getenv('NOTIFICATION_COUNT_CACHE_TIMEOUT', '60')),
    REALTIME_HEARTBEAT_INTERVAL=int(os.getenv('REALTIME_HEARTBEAT_INTERVAL', '10')),
    SLOW_REQUEST_THRESHOLD_MS=float(os.getenv('SLOW_REQUEST_THRESHOLD_MS', '750')),
    COMPRESS_MIMETYPES=['text/html', 'text/css', 'application/json'],
    COMPRESS_MIN_SIZE=500,
)
if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_pre_ping': True,
        'pool_recycle': 1800,
        'pool_size': int(os.getenv('DB_POOL_SIZE', '10')),
        'max_overflow': 20,
    }

csrf = CSRFProtect(app)
db = SQLAlchemy(app)
migrate = Migrate(app, db)
login_manager = LoginManager(app)
login_manager.login_view = 'auth.login'
login_manager.login_message = "Faça login para continuar."

init_cache(app)

limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=[
        limit.strip() for limit in os.getenv('RATELIMIT_DEFAULT_LIMITS', '').split(',') if limit.strip()
    ] or None,
    storage_uri=os.getenv('RATELIMIT_STORAGE_URI') or os.getenv('REDIS_URL') or "memory://",
    strategy="fixed-window",
    headers_enabled=True,
)

compress = Compress(app)


def _forwarded_https() -> bool:
    return request.headers.get('X-Forwarded-Proto', request.scheme) == 'https'


@app.before_request
def _enforce_https():
    if app.config['ENFORCE_HTTPS'] and not _forwarded_https():
        return redirect(request.url.replace('http://', 'https://', 1), code=301)


@app.before_request
def _start_request_timer():
    g.request_started_at = time.perf_counter()


@app.after_request
def _log_slow_requests(response):
    """Warn about requests slower than ``SLOW_REQUEST_THRESHOLD_MS``; streams are skipped."""
    started_at = getattr(g, 'request_started_at', None)
    threshold_ms = app.config['SLOW_REQUEST_THRESHOLD_MS']
    if started_at is None or threshold_ms <= 0 or request.endpoint == 'realtime.realtime_stream':
        return response
    elapsed_ms = (time.perf_counter() - started_at) * 1000
    if elapsed_ms >= threshold_ms:
        app.logger.warning(
            "SLOW REQUEST: %s %s took %.1f ms (status=%s, user=%s)",
            request.method,
            request.path,
            elapsed_ms,
            response.status_code,
            current_user.get_id() if current_user.is_authenticated else 'anonymous',
        )
    return response


@app.after_request
def _set_security_headers(response):
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if app.config['ENFORCE_HTTPS'] and _forwarded_https():
        response.headers.setdefault('Strict-Transport-Security', 'max-age=31536000; includeSubDomains')
    return response


# Modelos e o feed de alterações precisam do db já criado
from fusion.models import tables  # noqa: E402,F401
from fusion.services import change_feed  # noqa: E402,F401
from fusion.controllers.routes import register_blueprints  # noqa: E402

register_blueprints(app)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(tables.Profile, user_id)


@app.context_processor
def inject_now():
    """``now()`` in templates, in São Paulo local time."""
    return {'now': lambda: datetime.now(SAO_PAULO_TZ).replace(tzinfo=None)}


with app.app_context():
    db.create_all()

from fusion.utils.logging_config import setup_logging  # noqa: E402

setup_logging(app)
