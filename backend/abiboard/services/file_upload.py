"""
Image upload storage.

Profile images are stored on the local filesystem below
``settings.UPLOAD_DIR``. The database only keeps the public reference
``/uploads/profiles/<user_id>/<filename>``; ``resolve_reference`` maps it
back to a path on disk.
"""

import io
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from PIL import Image, UnidentifiedImageError

from abiboard.core.config import settings
from abiboard.core.logging_config import logger


REFERENCE_PREFIX = "/uploads/"
PROFILE_UPLOAD_FOLDER = "profiles"

# Pillow format -> (content type, file extension)
IMAGE_FORMATS = {
    "JPEG": ("image/jpeg", ".jpg"),
    "PNG": ("image/png", ".png"),
    "WEBP": ("image/webp", ".webp"),
}

FILE_TOO_LARGE_MESSAGE = "Die Datei ist zu groß. Maximal 5 MB erlaubt."
INVALID_TYPE_MESSAGE = "Ungültiger Dateityp. Nur JPG, PNG und WebP sind erlaubt."
UNREADABLE_IMAGE_MESSAGE = "Die Datei ist kein gültiges Bild."


@dataclass
class ImageValidationResult:
    valid: bool
    error: Optional[str] = None
    extension: Optional[str] = None


def validate_image_file(data: bytes, content_type: Optional[str]) -> ImageValidationResult:
    """
    Check size, declared content type and the actual image data.

    The declared type must be allowed and Pillow must be able to read the
    bytes as one of the allowed formats.
    """
    if len(data) > settings.MAX_IMAGE_SIZE:
        return ImageValidationResult(False, FILE_TOO_LARGE_MESSAGE)

    if (content_type or "").lower() not in settings.ALLOWED_IMAGE_TYPES:
        return ImageValidationResult(False, INVALID_TYPE_MESSAGE)

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        return ImageValidationResult(False, UNREADABLE_IMAGE_MESSAGE)

    detected = IMAGE_FORMATS.get(image_format or "")
    if not detected or detected[0] not in settings.ALLOWED_IMAGE_TYPES:
        return ImageValidationResult(False, INVALID_TYPE_MESSAGE)

    return ImageValidationResult(True, extension=detected[1])


def generate_unique_filename(field_key: str, extension: str) -> str:
    """<field>-<millis>-<12 hex chars><ext>"""
    timestamp = int(time.time() * 1000)
    return f"{field_key}-{timestamp}-{secrets.token_hex(6)}{extension}"


def resolve_reference(reference: str) -> Optional[Path]:
    """
    Map a stored reference to its file below the upload directory.

    Returns None for references outside the upload directory.
    """
    if not reference or not reference.startswith(REFERENCE_PREFIX):
        return None

    root = settings.UPLOAD_DIR.resolve()
    path = (root / reference[len(REFERENCE_PREFIX):]).resolve()
    if path == root or root not in path.parents:
        return None
    return path


async def save_image_file(data: bytes, user_id: str, field_key: str, extension: str) -> str:
    """Write an already validated image and return its reference"""
    user_dir = settings.UPLOAD_DIR / PROFILE_UPLOAD_FOLDER / str(user_id)
    await aiofiles.os.makedirs(user_dir, exist_ok=True)

    filename = generate_unique_filename(field_key, extension)
    async with aiofiles.open(user_dir / filename, "wb") as f:
        await f.write(data)

    reference = f"{REFERENCE_PREFIX}{PROFILE_UPLOAD_FOLDER}/{user_id}/{filename}"
    logger.debug(f"[Upload] Stored {reference} ({len(data)} bytes)")
    return reference


async def delete_image_file(reference: str) -> bool:
    """Delete a stored image. Never raises; returns whether a file was removed."""
    path = resolve_reference(reference)
    if path is None:
        logger.warning(f"[Upload] Refusing to delete unknown reference: {reference}")
        return False

    try:
        await aiofiles.os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"[Upload] Failed to delete {reference}: {e}")
        return False
