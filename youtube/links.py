"""YouTube link normalization: identifier extraction and derived URLs.

Every derived URL is a pure function of the 11-character video identifier, so
only the identifier (plus the default thumbnail as a convenience) is stored.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import urlencode

import httpx

from data.errors import ValidationFailure

logger = logging.getLogger(__name__)

# Tried in order; protocol and "www." are optional in every shape.
YOUTUBE_URL_PATTERNS = (
    re.compile(r'(?:https?://)?(?:www\.)?youtube\.com/watch\?v=([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:https?://)?(?:www\.)?youtu\.be/([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:https?://)?(?:www\.)?youtube\.com/embed/([a-zA-Z0-9_-]{11})'),
    re.compile(r'(?:https?://)?(?:www\.)?youtube\.com/v/([a-zA-Z0-9_-]{11})'),
)

VIDEO_ID_RE = re.compile(r'^[a-zA-Z0-9_-]{11}$')

# scheme optional, host is localhost or dotted labels with an alphabetic TLD
_URL_RE = re.compile(
    r'^(?:https?://)?'
    r'(?:localhost|(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63})'
    r'(?::\d{1,5})?'
    r'(?:[/?#]\S*)?$'
)

THUMBNAIL_HOST = "https://img.youtube.com/vi"
EMBED_HOST = "https://www.youtube.com/embed"
WATCH_HOST = "https://www.youtube.com/watch"

DEFAULT_THUMBNAIL_QUALITY = "maxresdefault"
THUMBNAIL_QUALITIES = frozenset({"default", "mqdefault", "hqdefault", "sddefault", "maxresdefault"})


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """Return the video identifier from any accepted link shape, else None."""
    if not url:
        return None
    url = url.strip()
    for pattern in YOUTUBE_URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    logger.debug("No video identifier in %r", url)
    return None


def is_valid_url(url: Optional[str]) -> bool:
    """Syntactic URL check; http/https prefix is optional."""
    if not url or not isinstance(url, str):
        return False
    return bool(_URL_RE.match(url.strip()))


def validate_youtube_url(url: Optional[str]) -> str:
    """Write-time check: a valid URL that also carries an identifier.

    Returns the identifier. Raises ValidationFailure otherwise.
    """
    if not url:
        raise ValidationFailure("YouTube URL is required for video type",
                                errors=[{"field": "youtubeUrl", "message": "YouTube URL is required for video type"}])
    if not is_valid_url(url):
        raise ValidationFailure("YouTube URL must be a valid URL",
                                errors=[{"field": "youtubeUrl", "message": "YouTube URL must be a valid URL"}])
    video_id = extract_video_id(url)
    if not video_id:
        raise ValidationFailure("Invalid YouTube URL format",
                                errors=[{"field": "youtubeUrl", "message": "Please provide a valid YouTube URL"}])
    return video_id


def thumbnail_url(video_id: str, quality: str = DEFAULT_THUMBNAIL_QUALITY) -> str:
    if quality not in THUMBNAIL_QUALITIES:
        raise ValueError(f"Unknown thumbnail quality: {quality}")
    return f"{THUMBNAIL_HOST}/{video_id}/{quality}.jpg"


def _flag(value: bool) -> str:
    return "1" if value else "0"


def embed_url(video_id: str, autoplay: Optional[bool] = None, mute: Optional[bool] = None,
              controls: Optional[bool] = None, rel: Optional[bool] = None,
              start: Optional[int] = None, end: Optional[int] = None) -> str:
    """Embed URL; query params appear only when explicitly requested."""
    params = []
    if autoplay is not None:
        params.append(("autoplay", _flag(autoplay)))
    if mute is not None:
        params.append(("mute", _flag(mute)))
    if controls is not None:
        params.append(("controls", _flag(controls)))
    if rel is not None:
        params.append(("rel", _flag(rel)))
    if start is not None:
        params.append(("start", str(start)))
    if end is not None:
        params.append(("end", str(end)))
    base = f"{EMBED_HOST}/{video_id}"
    return f"{base}?{urlencode(params)}" if params else base


def watch_url(video_id: str) -> str:
    return f"{WATCH_HOST}?v={video_id}"


def parse_youtube_url(url: Optional[str]) -> dict:
    """Identifier plus all derived URLs, or an all-null result when unparseable."""
    video_id = extract_video_id(url)
    if not video_id:
        return {
            "isValid": False,
            "videoId": None,
            "thumbnailUrl": None,
            "embedUrl": None,
            "watchUrl": None,
        }
    return {
        "isValid": True,
        "videoId": video_id,
        "thumbnailUrl": thumbnail_url(video_id),
        "embedUrl": embed_url(video_id),
        "watchUrl": watch_url(video_id),
    }


async def check_video_exists(video_id: Optional[str], client: Optional[httpx.AsyncClient] = None,
                             timeout: float = 10) -> bool:
    """Probe the low-quality thumbnail; a 200 means the video most likely exists."""
    if not video_id or not VIDEO_ID_RE.match(video_id):
        return False
    url = thumbnail_url(video_id, "default")
    try:
        if client is not None:
            resp = await client.get(url)
        else:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                resp = await owned.get(url)
    except httpx.HTTPError as e:
        logger.warning("Thumbnail probe failed for %s: %s", video_id, e)
        return False
    return resp.status_code == 200
