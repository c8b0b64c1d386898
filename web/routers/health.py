"""Health check route."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from utils import utc_now_iso
from version import __version__
from web.deps import get_web_config

router = APIRouter()


@router.get("/api/health")
async def health(request: Request):
    cfg = get_web_config(request)
    return JSONResponse({
        "status": "OK",
        "message": "Solution catalog API is running",
        "timestamp": utc_now_iso(),
        "environment": cfg.environment if cfg else "development",
        "version": __version__,
    })
