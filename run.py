"""Serve the Fusion workspace with Waitress."""
import logging
import os

from waitress import serve

from fusion import app

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw.isdigit() else default


def serve_app() -> None:
    logging.getLogger("waitress").setLevel(os.getenv("WAITRESS_LOG_LEVEL", "info").upper())

    options = {
        "host": os.getenv("WAITRESS_HOST", "127.0.0.1"),
        "port": _env_int("WAITRESS_PORT", 5000),
        "threads": _env_int("WAITRESS_THREADS", 16),
        "connection_limit": _env_int("WAITRESS_CONNECTION_LIMIT", 200),
        # realtime streams idle between heartbeats
        "channel_timeout": _env_int("WAITRESS_CHANNEL_TIMEOUT", 120),
        "max_request_body_size": app.config["MAX_CONTENT_LENGTH"],
        "clear_untrusted_proxy_headers": True,
    }
    logger.info("Fusion listening on %(host)s:%(port)s (%(threads)s threads)", options)
    serve(app, **options)


if __name__ == "__main__":
    serve_app()
