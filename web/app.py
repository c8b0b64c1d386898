"""FastAPI application: routers, error handlers and runtime wiring."""

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import Config
from data.catalog_store import CatalogStore
from data.repository import CatalogRepository
from version import __version__
from web.errors import register_error_handlers
from web.middleware import SecurityHeadersMiddleware
from web.routers.health import router as health_router
from web.routers.videos import router as videos_router
from web.shared import configure_rate_limit, limiter
from web.uploads import UPLOAD_URL_PREFIX
from youtube.links import check_video_exists

logger = logging.getLogger(__name__)

app = FastAPI(title="Solution Catalog", version=__version__)
app.state.limiter = limiter
register_error_handlers(app)
app.include_router(videos_router)
app.include_router(health_router)


def configure_app(target: FastAPI, config: Config, store: CatalogStore, link_prober=None) -> None:
    """Attach dependencies to app.state, mount uploads and add middleware.

    Must run before the app starts serving (middleware cannot be added later).
    """
    state = target.state
    state.repository = CatalogRepository(store)
    state.web_config = config.web
    state.upload_config = config.uploads
    state.link_prober = link_prober or check_video_exists
    configure_rate_limit(config.web.rate_limit)

    upload_dir = Path(config.uploads.directory)
    upload_dir.mkdir(parents=True, exist_ok=True)
    target.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=str(upload_dir)), name="uploads")

    # last added = first executed
    target.add_middleware(SecurityHeadersMiddleware)
    target.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("Web app configured (environment=%s)", config.web.environment)
