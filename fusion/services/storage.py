"""Attachment storage backed by the uploads folder."""

import logging
import os
import time
from concurrent.futures import as_completed
from uuid import uuid4

from flask import current_app, url_for
from werkzeug.utils import secure_filename

from fusion.extensions.task_queue import submit_io_task
from fusion.services.errors import RemoteOperationError

logger = logging.getLogger(__name__)


def upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def random_name(filename: str, prefix: str = "") -> str:
    """``<prefix><millis>-<hex>.<ext>``; the original name is not kept."""
    _, ext = os.path.splitext(secure_filename(filename or ""))
    return f"{prefix}{int(time.time() * 1000)}-{uuid4().hex}{ext.lower()}"


def public_url(name: str) -> str:
    base = current_app.config.get("PUBLIC_BASE_URL")
    if base:
        return f"{base}/uploads/{name}"
    return url_for("uploads.serve_upload", filename=name, _external=True)


def _write(file, folder: str, name: str) -> str:
    try:
        file.save(os.path.join(folder, name))
    except OSError as exc:
        logger.error("Falha ao gravar upload %s: %s", name, exc)
        raise RemoteOperationError(f"upload failed: {exc}") from exc
    return name


def save_upload(file, prefix: str = "") -> str:
    """Store ``file`` under a random name and return its public URL."""
    name = random_name(getattr(file, "filename", "") or "", prefix)
    _write(file, upload_folder(), name)
    return public_url(name)


def save_uploads_parallel(files, prefix: str = "") -> list[str]:
    """Store every file concurrently; URLs come back in completion order."""
    folder = upload_folder()
    futures = [
        submit_io_task(_write, file, folder, random_name(getattr(file, "filename", "") or "", prefix))
        for file in files
    ]
    urls = []
    for future in as_completed(futures):
        urls.append(public_url(future.result()))
    return urls
