"""Shared pytest fixtures for solution catalog tests."""

import pytest

from config import Config, WebConfig, DatabaseConfig, UploadConfig
from data.catalog_store import CatalogStore
from data.entries import prepare_entry
from data.repository import CatalogRepository


@pytest.fixture
def catalog_store(tmp_path):
    """CatalogStore backed by a temp-dir SQLite file (pooled connections can't share :memory:)."""
    store = CatalogStore(db_path=str(tmp_path / "test.db"), max_connections=4, timeout=2.0)
    yield store
    store.close()


@pytest.fixture
def repository(catalog_store):
    return CatalogRepository(catalog_store)


@pytest.fixture
def add_entry(catalog_store):
    """Factory inserting a validated video entry; keyword args override the payload."""
    counter = iter(range(1000))

    def _add(**overrides) -> dict:
        n = next(counter)
        fields = {
            "title": f"Solution {n}",
            "description": "Worked solution",
            "bookTitle": "Physics Part 1",
            "chapter": "Motion",
            "type": "video",
            "youtubeUrl": f"https://youtu.be/vid{n:08d}",
        }
        fields.update(overrides)
        stored_file = fields.pop("stored_file", None)
        return catalog_store.insert_entry(prepare_entry(fields, stored_file))

    return _add


@pytest.fixture
def sample_config(tmp_path):
    """Minimal Config with safe defaults for testing."""
    return Config(
        web=WebConfig(host="127.0.0.1", port=9999, environment="test"),
        database=DatabaseConfig(path=str(tmp_path / "test.db"), max_connections=4, timeout=2.0),
        uploads=UploadConfig(directory=str(tmp_path / "uploads"), max_bytes=1024),
    )


@pytest.fixture
def config_yaml(tmp_path):
    """Write a minimal config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text("""\
web:
  host: 0.0.0.0
  port: 8080
  environment: production
  cors_origins:
    - "https://catalog.example.org"
  rate_limit: "20/minute"
database:
  path: "{db_path}"
  max_connections: 5
  timeout: 2.5
uploads:
  directory: "{upload_dir}"
  max_bytes: 2048
""".format(db_path=str(tmp_path / "cfg_test.db"), upload_dir=str(tmp_path / "up")))
    return cfg
