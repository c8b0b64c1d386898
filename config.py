"""Configuration management for the solution catalog."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("development", "production", "test")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in strings, dicts, and lists.

    Supports both ${VAR} and $VAR patterns.
    """
    if isinstance(value, str):
        # Expand ${VAR} pattern
        pattern = re.compile(r'\$\{([^}]+)\}')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), value)
        # Expand $VAR pattern
        pattern = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
        result = pattern.sub(lambda m: os.environ.get(m.group(1), ''), result)
        return result
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    else:
        return value


def _split_csv(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class WebConfig:
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"  # development | production | test
    cors_origins: list[str] = field(default_factory=lambda: [
        "http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5500",
    ])
    rate_limit: str = "100/15minutes"  # slowapi limit string for /api/videos

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "db/catalog.db"
    max_connections: int = 10
    timeout: float = 5.0  # seconds to wait for a pooled connection / busy lock


@dataclass
class UploadConfig:
    """Image upload configuration."""
    directory: str = "uploads"
    max_bytes: int = 10 * 1024 * 1024


@dataclass
class Config:
    """Main configuration container."""
    web: WebConfig = field(default_factory=WebConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    uploads: UploadConfig = field(default_factory=UploadConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from YAML file with environment variable expansion."""
        path = Path(path)
        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        # Expand environment variables
        expanded_config = expand_env_vars(raw_config)

        web_data = expanded_config.get("web") or {}
        database_data = expanded_config.get("database") or {}
        uploads_data = expanded_config.get("uploads") or {}

        return cls(
            web=WebConfig(**web_data),
            database=DatabaseConfig(**database_data),
            uploads=UploadConfig(**uploads_data),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration directly from environment variables."""
        web = WebConfig(
            host=os.environ.get("SC_WEB_HOST", "0.0.0.0"),
            port=int(os.environ.get("SC_WEB_PORT", os.environ.get("PORT", "3000"))),
            environment=os.environ.get("SC_ENVIRONMENT", "development"),
            rate_limit=os.environ.get("SC_RATE_LIMIT", "100/15minutes"),
        )
        origins = os.environ.get("SC_CORS_ORIGINS", "")
        if origins:
            web.cors_origins = _split_csv(origins)
        return cls(
            web=web,
            database=DatabaseConfig(
                path=os.environ.get("SC_DB_PATH", "db/catalog.db"),
                max_connections=int(os.environ.get("SC_DB_MAX_CONNECTIONS", "10")),
                timeout=float(os.environ.get("SC_DB_TIMEOUT", "5.0")),
            ),
            uploads=UploadConfig(
                directory=os.environ.get("SC_UPLOAD_DIR", "uploads"),
                max_bytes=int(os.environ.get("SC_UPLOAD_MAX_BYTES", str(10 * 1024 * 1024))),
            ),
        )


def load_config(config_path: str | None = None) -> Config:
    """Load configuration from file or environment.

    Tries in order:
    1. Provided config_path
    2. Default paths: config.yaml, config.yml
    3. Environment variables (fallback)
    """
    config: Config | None = None

    if config_path:
        path = Path(config_path)
        if path.exists():
            config = Config.from_yaml(path)
        else:
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        # Try default paths
        for default_path in ["config.yaml", "config.yml"]:
            path = Path(default_path)
            if path.exists():
                config = Config.from_yaml(path)
                break

    if config is None:
        # Fallback to environment variables
        config = Config.from_env()

    if config.web.environment not in ENVIRONMENTS:
        logger.warning("Unknown environment %r, falling back to development", config.web.environment)
        config.web.environment = "development"

    if config.database.max_connections < 1:
        logger.warning("database.max_connections %r is not positive, using 10",
                       config.database.max_connections)
        config.database.max_connections = 10

    if config.uploads.max_bytes < 1:
        logger.warning("uploads.max_bytes %r is not positive, using 10 MiB", config.uploads.max_bytes)
        config.uploads.max_bytes = 10 * 1024 * 1024

    return config
