from __future__ import annotations

import os
from datetime import datetime, timezone
from uuid import uuid4

from loguru import logger

from ..schema import ImageInput
from ..shard import constants as C


# --------------------------- mime heuristics ------------------------------ #
def guess_mime_from_path(path: str) -> str:
    """Mime type from the file extension only; unknown extensions map to JPEG."""
    _, ext = os.path.splitext(path)
    return C.INPUT_MIME_BY_EXTENSION.get(ext.lower(), C.DEFAULT_INPUT_MIME)


# --------------------------- reading -------------------------------------- #
def read_image_input(path: str) -> ImageInput:
    """Read a local image file. Raises OSError when the file cannot be read."""
    with open(path, "rb") as f:
        data = f.read()
    return ImageInput(path=path, data=data, mime_type=guess_mime_from_path(path))


def try_read_image_input(path: str) -> ImageInput | None:
    """Best-effort variant of :func:`read_image_input`; returns None on failure."""
    try:
        return read_image_input(path)
    except OSError as e:
        logger.warning(f"Skipping unreadable reference image {path}: {e}")
        return None


def read_reference_images(paths: list[str]) -> list[ImageInput]:
    """Read reference images in order, silently dropping the unreadable ones."""
    results = [try_read_image_input(p) for p in paths]
    return [r for r in results if r is not None]


# --------------------------- naming --------------------------------------- #
def timestamp_token(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp (millisecond precision) with ':' and '.' replaced by '-'."""
    now = now or datetime.now(timezone.utc)
    iso = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


def generate_filename(prefix: str) -> str:
    """``{prefix}-{timestamp}-{token}.png``; unique in practice across calls."""
    token = uuid4().hex[: C.RANDOM_TOKEN_LENGTH]
    return f"{prefix}-{timestamp_token()}-{token}{C.GENERATED_EXTENSION}"


def normalize_save_path(relative_save_path: str) -> str:
    """Normalize a caller-supplied save path so it always names a file under the workplace.

    Leading and trailing separators are stripped ("/a/b.png" becomes "a/b.png",
    "out/" becomes "out"). Raises ``ValueError`` when nothing is left or the
    path climbs out of the workplace with "..".
    """
    separators = os.sep + (os.altsep or "")
    cleaned = relative_save_path.strip().strip(separators)
    normalized = os.path.normpath(cleaned) if cleaned else ""
    if normalized in ("", os.curdir):
        raise ValueError("relative_save_path must name a file")
    if normalized == os.pardir or normalized.startswith(os.pardir + os.sep):
        raise ValueError("relative_save_path must stay inside the workplace directory")
    return normalized


def resolve_target_directory(workplace: str, relative_save_path: str | None) -> str:
    """Directory portion of ``relative_save_path`` joined onto the workplace, or the workplace itself."""
    if relative_save_path:
        return os.path.join(workplace, os.path.dirname(normalize_save_path(relative_save_path)))
    return workplace


def save_filename(relative_save_path: str) -> str:
    """Final component of a normalized save path; never empty."""
    return os.path.basename(normalize_save_path(relative_save_path))


# --------------------------- writing -------------------------------------- #
def ensure_directory(directory: str) -> str:
    """Ensure directory exists, creating parents if necessary. Returns absolute path."""
    abs_directory = os.path.abspath(directory)
    os.makedirs(abs_directory, mode=C.DIRECTORY_MODE, exist_ok=True)
    return abs_directory


def save_image_bytes(image_bytes: bytes, directory: str, filename: str) -> str:
    """Write image bytes to ``directory/filename`` and return the absolute path.

    Existing files with the same name are overwritten.

    Raises:
        OSError: If the directory cannot be created or the file cannot be written
    """
    target_dir = ensure_directory(directory)
    file_path = os.path.join(target_dir, filename)
    with open(file_path, "wb") as f:
        f.write(image_bytes)
    logger.info(f"Saved image ({len(image_bytes)} bytes) to {file_path}")
    return file_path


__all__ = [
    "guess_mime_from_path",
    "read_image_input",
    "try_read_image_input",
    "read_reference_images",
    "timestamp_token",
    "generate_filename",
    "normalize_save_path",
    "resolve_target_directory",
    "save_filename",
    "ensure_directory",
    "save_image_bytes",
]
