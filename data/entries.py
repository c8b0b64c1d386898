"""
Write-path normalization for catalog entries.

Payloads are validated and the derived link fields computed here, explicitly,
before anything is handed to the store.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from data.errors import ValidationFailure
from data.query import CONTENT_TYPES, DIFFICULTIES
from utils import is_blank, parse_int, split_tags
from youtube.links import embed_url, thumbnail_url, validate_youtube_url

ENTRY_ID_RE = re.compile(r'^[0-9a-f]{24}$')

MAX_TAGS = 10
MAX_TAG_LENGTH = 30

# wire name -> (column, min length, max length) for free-text fields
_TEXT_FIELDS = {
    "title": ("title", 1, 200),
    "description": ("description", 1, 1000),
    "bookTitle": ("book_title", 1, 100),
    "chapter": ("chapter", 1, 50),
    "subject": ("subject", 0, 50),
    "grade": ("grade", 0, 20),
    "duration": ("duration", 0, 20),
    "uploadedBy": ("uploaded_by", 1, 100),
}
_REQUIRED_ON_CREATE = ("description", "bookTitle", "chapter", "type")

_LABELS = {
    "title": "Title",
    "description": "Description",
    "bookTitle": "Book title",
    "chapter": "Chapter",
    "subject": "Subject",
    "grade": "Grade",
    "duration": "Duration",
    "uploadedBy": "Uploaded by",
}


@dataclass
class StoredFile:
    """Descriptor handed over by the upload handler for image entries."""
    url: str
    name: str
    size: int


def validate_entry_id(entry_id: str) -> str:
    if not entry_id or not ENTRY_ID_RE.match(entry_id):
        raise ValidationFailure("Invalid video ID format")
    return entry_id


class _Collector:
    """Accumulates field errors so a payload reports all problems at once."""

    def __init__(self):
        self.errors: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailure("Validation failed", errors=self.errors)


def _clean_text(name: str, value: Any, errors: _Collector) -> Optional[str]:
    _, low, high = _TEXT_FIELDS[name]
    text = "" if value is None else str(value).strip()
    if len(text) < low or len(text) > high:
        label = _LABELS[name]
        if low:
            errors.add(name, f"{label} must be between {low} and {high} characters")
        else:
            errors.add(name, f"{label} cannot exceed {high} characters")
        return None
    return text or None


def _clean_tags(value: Any, errors: _Collector) -> list[str]:
    tags = split_tags(value)
    if len(tags) > MAX_TAGS:
        errors.add("tags", f"Maximum {MAX_TAGS} tags allowed")
    for tag in tags:
        if len(tag) > MAX_TAG_LENGTH:
            errors.add("tags", f"Each tag must be at most {MAX_TAG_LENGTH} characters")
            break
    return tags


def _normalize(fields: Mapping, errors: _Collector) -> dict:
    """Validate the supplied subset of fields and map them to columns."""
    out: dict = {}
    for name, (column, _, _) in _TEXT_FIELDS.items():
        if name in fields and fields[name] is not None:
            out[column] = _clean_text(name, fields[name], errors)

    if fields.get("type") is not None:
        if fields["type"] not in CONTENT_TYPES:
            errors.add("type", 'Type must be either "video" or "image"')
        else:
            out["content_type"] = fields["type"]

    if not is_blank(fields.get("difficulty")):
        if fields["difficulty"] not in DIFFICULTIES:
            errors.add("difficulty", "Difficulty must be easy, medium, or hard")
        else:
            out["difficulty"] = fields["difficulty"]

    if fields.get("tags") is not None:
        out["tags"] = _clean_tags(fields["tags"], errors)

    if fields.get("likes") is not None:
        likes = parse_int(fields["likes"])
        if likes is None or likes < 0:
            errors.add("likes", "Likes must be a non-negative integer")
        else:
            out["likes"] = likes

    if fields.get("youtubeUrl") is not None:
        out["external_url"] = str(fields["youtubeUrl"]).strip() or None
    return out


def _apply_media(record: dict, out: dict, stored_file: Optional[StoredFile],
                 errors: _Collector) -> None:
    """Enforce the video/image field invariants on the merged record.

    `record` is the full prospective entry; derived and file columns are
    written into `out`.
    """
    content_type = record.get("content_type")
    if content_type == "video":
        url = record.get("external_url")
        try:
            video_id = validate_youtube_url(url)
        except ValidationFailure as e:
            errors.errors.extend(e.errors or [{"field": "youtubeUrl", "message": e.message}])
            return
        out["external_url"] = url
        out["link_id"] = video_id
        out["thumbnail_url"] = thumbnail_url(video_id)
        out["file_url"] = None
        out["file_name"] = None
        out["file_size"] = None
    elif content_type == "image":
        if stored_file is not None:
            out["file_url"] = stored_file.url
            out["file_name"] = stored_file.name
            out["file_size"] = stored_file.size
        elif not record.get("file_url"):
            errors.add("image", "An image file is required for image type")
            return
        # Media fields of the other type do not apply
        out["external_url"] = None
        out["link_id"] = None
        out["thumbnail_url"] = None


def prepare_entry(fields: Mapping, stored_file: Optional[StoredFile] = None) -> dict:
    """Validate a create payload and return store columns.

    Title falls back to the book title when omitted.
    """
    errors = _Collector()
    for name in _REQUIRED_ON_CREATE:
        if is_blank(fields.get(name)):
            label = _LABELS.get(name, "Type")
            errors.add(name, f"{label} is required")

    data = dict(fields)
    if is_blank(data.get("title")):
        data["title"] = data.get("bookTitle")
    out = _normalize({k: v for k, v in data.items() if not is_blank(v) or k == "tags"}, errors)
    out.setdefault("difficulty", "medium")
    out.setdefault("tags", [])

    if out.get("content_type"):
        _apply_media(out, out, stored_file, errors)
    errors.raise_if_any()
    return out


def prepare_update(existing: dict, changes: Mapping, stored_file: Optional[StoredFile] = None) -> dict:
    """Validate a partial update against the current entry.

    Only supplied fields are touched. Link fields are re-derived when the URL
    or content type changes; id and createdAt are never writable.
    """
    errors = _Collector()
    supplied = {k: v for k, v in changes.items()
                if k not in ("id", "createdAt", "updatedAt", "views", "isActive")}
    out = _normalize(supplied, errors)

    merged = {**existing, **out}
    media_touched = (
        "content_type" in out or "external_url" in out or stored_file is not None
    )
    if media_touched and merged.get("content_type"):
        _apply_media(merged, out, stored_file, errors)
    errors.raise_if_any()
    return out


def to_wire(entry: dict) -> dict:
    """Store row -> JSON shape served to clients."""
    link_id = entry.get("link_id")
    return {
        "id": entry["id"],
        "title": entry["title"],
        "description": entry["description"],
        "bookTitle": entry["book_title"],
        "chapter": entry["chapter"],
        "type": entry["content_type"],
        "youtubeUrl": entry.get("external_url"),
        "youtubeVideoId": link_id,
        "thumbnailUrl": entry.get("thumbnail_url") or (thumbnail_url(link_id) if link_id else None),
        "embedUrl": embed_url(link_id) if link_id else None,
        "fileUrl": entry.get("file_url"),
        "fileName": entry.get("file_name"),
        "fileSize": entry.get("file_size"),
        "duration": entry.get("duration"),
        "tags": entry.get("tags", []),
        "difficulty": entry.get("difficulty"),
        "subject": entry.get("subject"),
        "grade": entry.get("grade"),
        "uploadedBy": entry.get("uploaded_by"),
        "views": entry.get("view_count", 0),
        "likes": entry.get("likes", 0),
        "isActive": entry.get("is_active", True),
        "publishedAt": entry.get("published_at"),
        "createdAt": entry.get("created_at"),
        "updatedAt": entry.get("updated_at"),
    }
