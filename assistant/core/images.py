from __future__ import annotations

import base64
import logging
import os
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from assistant.errors import ResourceUnavailable
from config.settings import get_settings


logger = logging.getLogger("visionchat.images")


class InlineImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime_type: str
    data: str


ImageEncoder = Callable[[str], InlineImage]


def mime_type_for(image_ref: str) -> str:
    lowered = image_ref.lower()
    if lowered.endswith(".png"):
        return "image/png"
    if lowered.endswith(".gif"):
        return "image/gif"
    return "image/jpeg"


def _resolve_path(image_ref: str, public_dir: str) -> str:
    root = os.path.realpath(public_dir)
    try:
        candidate = os.path.realpath(os.path.join(root, image_ref.lstrip("/\\")))
    except ValueError as exc:
        raise ResourceUnavailable(f"Invalid image reference: {image_ref!r}") from exc
    if os.path.commonpath([root, candidate]) != root:
        raise ResourceUnavailable(f"Image reference outside public directory: {image_ref}")
    return candidate


def encode_image(image_ref: str, public_dir: Optional[str] = None) -> InlineImage:
    """Read an uploaded image and return it as base64 with its mime type.

    ``image_ref`` is the ``/uploads/<name>`` path handed out by the upload
    endpoint; it is resolved under the public directory. Re-reads the file on
    every call.
    """
    path = _resolve_path(image_ref, public_dir or get_settings().public_dir)
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except (OSError, ValueError) as exc:
        logger.warning("Image %s could not be read: %s", image_ref, exc)
        raise ResourceUnavailable(f"Image not readable: {image_ref}") from exc

    logger.info("Encoded image %s (%s bytes)", image_ref, len(raw))
    return InlineImage(
        mime_type=mime_type_for(image_ref),
        data=base64.b64encode(raw).decode("ascii"),
    )
