"""FastAPI dependency providers — read from app.state, set by web.app.configure_app."""

from fastapi import Request

from data.repository import CatalogRepository


def get_repository(request: Request) -> CatalogRepository:
    """CatalogRepository bound to the shared store."""
    return request.app.state.repository


def get_web_config(request: Request):
    """WebConfig instance."""
    return request.app.state.web_config


def get_upload_config(request: Request):
    """UploadConfig instance."""
    return request.app.state.upload_config


def get_link_prober(request: Request):
    """Async callable(video_id) -> bool checking that a linked video exists."""
    return request.app.state.link_prober
