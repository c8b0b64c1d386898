"""Tests for web/deps.py — dependency injection from app.state."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from web.deps import (
    get_link_prober,
    get_repository,
    get_upload_config,
    get_web_config,
)


def _make_request(state_attrs=None):
    """Build a fake Request with app.state."""
    state = SimpleNamespace(**(state_attrs or {}))
    app = SimpleNamespace(state=state)
    return SimpleNamespace(app=app)


class TestRepositoryDeps:
    def test_get_repository(self):
        repo = MagicMock()
        req = _make_request({"repository": repo})
        assert get_repository(req) is repo


class TestConfigDeps:
    def test_get_web_config(self):
        cfg = MagicMock()
        req = _make_request({"web_config": cfg})
        assert get_web_config(req) is cfg

    def test_get_upload_config(self):
        cfg = MagicMock()
        req = _make_request({"upload_config": cfg})
        assert get_upload_config(req) is cfg


class TestLinkProber:
    def test_get_link_prober(self):
        prober = AsyncMock(return_value=False)
        req = _make_request({"link_prober": prober})
        assert get_link_prober(req) is prober


class TestConfigureApp:
    def test_state_wired(self, sample_config, catalog_store):
        from fastapi import FastAPI

        from data.repository import CatalogRepository
        from web.app import configure_app
        from youtube.links import check_video_exists

        test_app = FastAPI()
        configure_app(test_app, sample_config, catalog_store)
        state = test_app.state
        assert isinstance(state.repository, CatalogRepository)
        assert state.web_config is sample_config.web
        assert state.upload_config is sample_config.uploads
        assert state.link_prober is check_video_exists
