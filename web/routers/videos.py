"""Catalog API routes: listing, lookup, writes, metadata, stats, link inspection."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from data.errors import ValidationFailure
from web.deps import get_link_prober, get_repository, get_upload_config
from web.shared import api_rate_limit, limiter
from web.uploads import discard_upload, store_upload
from youtube.links import parse_youtube_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/videos")

_UPLOAD_FIELD = "image"


async def _read_payload(request: Request) -> tuple[dict, Optional[UploadFile]]:
    """Read a JSON or form body. Form bodies may carry one image file."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationFailure("Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationFailure("Request body must be a JSON object")
        return body, None

    form = await request.form()
    fields: dict = {}
    upload = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key != _UPLOAD_FIELD:
                raise ValidationFailure(f'Unexpected field name. Use "{_UPLOAD_FIELD}" as field name.')
            if upload is not None:
                raise ValidationFailure("Too many files. Only 1 file is allowed.")
            if value.filename:
                upload = value
        elif key == "tags" and key in fields:
            fields[key] = f"{fields[key]},{value}"
        else:
            fields[key] = value
    return fields, upload


@router.get("")
@limiter.limit(api_rate_limit)
async def list_videos(request: Request):
    """Filtered, sorted, paginated listing of active entries."""
    repo = get_repository(request)
    params = request.query_params
    result = await repo.list_entries({key: params.getlist(key) for key in params.keys()})
    return JSONResponse({
        "success": True,
        "data": result["items"],
        "pagination": result["pagination"],
        "filters": result["filters"],
    })


@router.get("/stats")
@limiter.limit(api_rate_limit)
async def video_stats(request: Request):
    repo = get_repository(request)
    return JSONResponse({"success": True, "data": await repo.stats()})


@router.get("/metadata/books")
@limiter.limit(api_rate_limit)
async def unique_books(request: Request):
    repo = get_repository(request)
    return JSONResponse({"success": True, "data": await repo.unique_books()})


@router.get("/metadata/chapters/{book_title}")
@limiter.limit(api_rate_limit)
async def chapters_by_book(request: Request, book_title: str):
    repo = get_repository(request)
    return JSONResponse({"success": True, "data": await repo.chapters_for_book(book_title)})


@router.get("/link-info")
@limiter.limit(api_rate_limit)
async def link_info(
    request: Request,
    url: str = Query(..., min_length=1, max_length=2048),
    check: bool = Query(False),
):
    """Identifier and derived URLs for a YouTube link; optionally probe that it exists."""
    info = parse_youtube_url(url)
    if check:
        info["exists"] = await get_link_prober(request)(info["videoId"]) if info["isValid"] else False
    return JSONResponse({"success": True, "data": info})


@router.get("/{entry_id}")
@limiter.limit(api_rate_limit)
async def get_video(request: Request, entry_id: str):
    """Single entry; counts one view per call."""
    repo = get_repository(request)
    return JSONResponse({"success": True, "data": await repo.get_entry(entry_id)})


@router.post("")
@limiter.limit(api_rate_limit)
async def create_video(request: Request):
    repo = get_repository(request)
    fields, upload = await _read_payload(request)
    upload_config = get_upload_config(request)
    stored_file = None
    if upload is not None and fields.get("type") == "image":
        stored_file = await store_upload(upload, upload_config)
    try:
        entry = await repo.create_entry(fields, stored_file)
    except Exception:
        if stored_file is not None:
            discard_upload(stored_file, upload_config)
        raise
    return JSONResponse(
        {"success": True, "message": "Video created successfully", "data": entry},
        status_code=201,
    )


@router.put("/{entry_id}")
@limiter.limit(api_rate_limit)
async def update_video(request: Request, entry_id: str):
    repo = get_repository(request)
    fields, upload = await _read_payload(request)
    upload_config = get_upload_config(request)
    stored_file = None
    if upload is not None:
        stored_file = await store_upload(upload, upload_config)
    try:
        entry = await repo.update_entry(entry_id, fields, stored_file)
    except Exception:
        if stored_file is not None:
            discard_upload(stored_file, upload_config)
        raise
    return JSONResponse({"success": True, "message": "Video updated successfully", "data": entry})


@router.delete("/{entry_id}")
@limiter.limit(api_rate_limit)
async def delete_video(request: Request, entry_id: str):
    repo = get_repository(request)
    await repo.delete_entry(entry_id)
    return JSONResponse({"success": True, "message": "Video deleted successfully"})
