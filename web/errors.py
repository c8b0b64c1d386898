"""Exception handlers: every API failure is a {success: false, message} JSON body."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from data.errors import CatalogError

logger = logging.getLogger(__name__)


def _shows_error_detail(request: Request) -> bool:
    cfg = getattr(request.app.state, "web_config", None)
    return bool(cfg and cfg.environment == "development")


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"success": False, "message": message, **extra}, status_code=status_code)


async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    extra = {"errors": exc.errors} if exc.errors else {}
    return error_response(exc.status_code, exc.message, **extra)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(400, "Validation failed", errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and request.url.path.startswith("/api/"):
        return error_response(404, f"Route {request.url.path} not found")
    return error_response(exc.status_code, str(exc.detail))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(429, "Too many requests from this IP, please try again later.")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = str(exc) if _shows_error_detail(request) else "Internal server error"
    return error_response(500, "Internal server error", error=detail)


def register_error_handlers(app: FastAPI) -> None:
    """Install all handlers on an app. Safe to call on fresh test apps."""
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
