"""Image upload handling: type filter, size limit, disk storage."""

import logging
import random
import re
import time
from pathlib import Path

from fastapi import UploadFile

from config import UploadConfig
from data.entries import StoredFile
from data.errors import PayloadTooLarge, ValidationFailure

logger = logging.getLogger(__name__)

_ALLOWED_TYPES = re.compile(r'jpeg|jpg|png|gif|webp')
_UNSAFE_CHARS = re.compile(r'[^A-Za-z0-9._-]+')
_CHUNK_SIZE = 64 * 1024

UPLOAD_URL_PREFIX = "/uploads"


def is_allowed_image(filename: str, content_type: str) -> bool:
    """Both the extension and the MIME type must name an image format."""
    ext = Path(filename or "").suffix.lower()
    return bool(_ALLOWED_TYPES.search(ext)) and bool(_ALLOWED_TYPES.search(content_type or ""))


def build_stored_name(original: str) -> str:
    """`{stem}-{epoch_ms}-{random}{ext}` with unsafe characters stripped."""
    path = Path(original or "upload")
    stem = _UNSAFE_CHARS.sub("_", path.stem)[:50] or "upload"
    ext = path.suffix.lower()
    return f"{stem}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def _format_size(n: int) -> str:
    if n >= 1024 * 1024:
        return f"{n // (1024 * 1024)}MB"
    return f"{max(1, n // 1024)}KB"


async def store_upload(upload: UploadFile, config: UploadConfig) -> StoredFile:
    """Persist one uploaded image and describe it for the entry record."""
    if not is_allowed_image(upload.filename, upload.content_type):
        raise ValidationFailure("Only image files (JPEG, JPG, PNG, GIF, WEBP) are allowed!")

    content = bytearray()
    while True:
        chunk = await upload.read(_CHUNK_SIZE)
        if not chunk:
            break
        content.extend(chunk)
        if len(content) > config.max_bytes:
            raise PayloadTooLarge(f"File too large. Maximum size is {_format_size(config.max_bytes)}.")

    directory = Path(config.directory)
    directory.mkdir(parents=True, exist_ok=True)
    name = build_stored_name(upload.filename)
    with open(directory / name, "wb") as f:
        f.write(content)
    logger.info("Stored upload %s (%d bytes)", name, len(content))
    return StoredFile(url=f"{UPLOAD_URL_PREFIX}/{name}", name=upload.filename or name, size=len(content))


def discard_upload(stored: StoredFile, config: UploadConfig) -> None:
    """Remove a stored upload whose entry was never written."""
    name = stored.url.rsplit("/", 1)[-1]
    (Path(config.directory) / name).unlink(missing_ok=True)
    logger.info("Discarded upload %s", name)
