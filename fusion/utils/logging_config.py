"""Logging setup: rotating text and JSON files plus the audit logger."""

import json
import logging
import os
import tempfile
import time
import traceback
from logging.handlers import TimedRotatingFileHandler

TEXT_FORMAT = '[%(asctime)s] %(levelname)s in %(module)s (%(funcName)s:%(lineno)d): %(message)s'


class MessageContainsFilter(logging.Filter):
    """Allow records that contain the configured substring."""

    def __init__(self, substring: str):
        super().__init__()
        self.substring = substring

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            return self.substring in record.getMessage()
        except (TypeError, ValueError):
            return False


class JsonFormatter(logging.Formatter):
    """One JSON object per line; audit extras are copied when present."""

    extra_keys = ("user_id", "action", "resource", "resource_id", "new_values")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update({key: getattr(record, key) for key in self.extra_keys if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class SafeTimedRotatingFileHandler(TimedRotatingFileHandler):
    """Postpone the rollover when another process holds the file."""

    def doRollover(self) -> None:  # type: ignore[override]
        try:
            super().doRollover()
        except PermissionError:
            self.stream = None
            self.rolloverAt = int(time.time()) + self.interval


# (file name, level, json?, days kept, filter)
APP_LOG_FILES = (
    ("app.log", logging.INFO, False, 60, None),
    ("app.jsonl", logging.INFO, True, 60, None),
    ("error.log", logging.ERROR, False, 90, None),
    ("warnings.log", logging.WARNING, False, 90, lambda record: record.levelno == logging.WARNING),
    ("slow_requests.log", logging.WARNING, False, 60, MessageContainsFilter("SLOW REQUEST")),
)
AUDIT_LOG_FILES = (
    ("user_actions.log", logging.INFO, False, 180, None),
    ("user_actions.jsonl", logging.INFO, True, 180, None),
)


def _resolve_log_dir(app) -> str:
    """``APP_LOG_DIR`` or ``<project>/logs``; the temp dir when neither is writable."""
    log_dir = os.getenv("APP_LOG_DIR") or os.path.join(os.path.dirname(app.root_path), "logs")
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        log_dir = os.path.join(tempfile.gettempdir(), "fusion-logs")
        os.makedirs(log_dir, exist_ok=True)
    if not os.access(log_dir, os.W_OK):
        log_dir = tempfile.mkdtemp(prefix="fusion-logs-")
    return log_dir


def _attach_files(logger: logging.Logger, log_dir: str, specs) -> None:
    text_formatter = logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
    json_formatter = JsonFormatter()
    for filename, level, as_json, days, record_filter in specs:
        handler = SafeTimedRotatingFileHandler(
            os.path.join(log_dir, filename),
            when='midnight',
            backupCount=days,
            encoding='utf-8',
            delay=True,
        )
        handler.setLevel(level)
        handler.setFormatter(json_formatter if as_json else text_formatter)
        if record_filter is not None:
            handler.addFilter(record_filter)
        logger.addHandler(handler)


def _reset(logger: logging.Logger) -> logging.Logger:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    return logger


def setup_logging(app):
    """Attach the file handlers to ``app.logger`` and to the ``user_actions`` logger.

    ``app.logger`` is the ``fusion`` logger, so module loggers created with
    ``logging.getLogger(__name__)`` inside the package end up here too. The
    audit logger does not propagate.
    """
    log_dir = _resolve_log_dir(app)

    _reset(app.logger).setLevel(logging.DEBUG if app.debug else logging.INFO)
    _attach_files(app.logger, log_dir, APP_LOG_FILES)
    if app.debug:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(TEXT_FORMAT))
        app.logger.addHandler(console)

    audit = _reset(logging.getLogger('user_actions'))
    audit.setLevel(logging.INFO)
    audit.propagate = False
    _attach_files(audit, log_dir, AUDIT_LOG_FILES)

    app.logger.info("Logging configured in %s", log_dir)
    return app.logger


def log_exception(error, request=None):
    """Log ``error`` with the request line and the current stack trace."""
    from flask import current_app

    lines = [f"EXCEPTION: {type(error).__name__}: {error}"]
    if request is not None:
        lines.append(f"Request: {request.method} {request.path} from {request.remote_addr}")
        lines.append(f"User-Agent: {request.headers.get('User-Agent', 'N/A')}")
    lines.append(traceback.format_exc())
    current_app.logger.error("\n".join(lines))
