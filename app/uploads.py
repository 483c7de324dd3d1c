from __future__ import annotations

import logging
import os
import threading
import time
from typing import Dict

from fastapi import UploadFile

from config.settings import Settings


logger = logging.getLogger("visionchat.uploads")

ALLOWED_TYPES = {"image/jpeg", "image/png", "image/gif"}

_name_lock = threading.Lock()
_last_stamp = 0


class UploadRejected(Exception):
    """Upload failed validation; the message is shown to the client."""


def ensure_upload_dir(settings: Settings) -> str:
    os.makedirs(settings.uploads_dir, exist_ok=True)
    return settings.uploads_dir


def _unique_stamp() -> int:
    global _last_stamp
    with _name_lock:
        now = int(time.time() * 1000)
        _last_stamp = now if now > _last_stamp else _last_stamp + 1
        return _last_stamp


def save_upload(image: UploadFile, settings: Settings) -> Dict[str, str]:
    """Validate and persist an uploaded image.

    Returns the stored filename and the ``/uploads/<name>`` reference the
    chat endpoint accepts as ``imageUrl``.
    """
    if image.content_type not in ALLOWED_TYPES:
        raise UploadRejected("Only .png, .jpg and .gif format allowed!")

    data = image.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise UploadRejected(
            f"File too large (limit {settings.max_upload_bytes // (1024 * 1024)}MB)"
        )

    ext = os.path.splitext(image.filename or "")[1].lower()
    filename = f"{_unique_stamp()}{ext}"
    path = os.path.join(ensure_upload_dir(settings), filename)
    with open(path, "wb") as fh:
        fh.write(data)

    logger.info("Stored upload %s (%s bytes, %s)", filename, len(data), image.content_type)
    return {"filename": filename, "path": f"/uploads/{filename}"}
