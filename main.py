#!/usr/bin/env python3
"""Solution Catalog - book/chapter indexed video and image solutions."""

import argparse
import asyncio
import logging

import uvicorn

from config import load_config, Config
from data.catalog_store import CatalogStore
from web.app import app as fastapi_app, configure_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("solution_catalog")


class SolutionCatalog:
    """Main orchestrator - owns the store and runs FastAPI."""

    def __init__(self, config: Config):
        self.config = config
        self.store = None
        self.server = None
        self.running = False

    def setup(self) -> None:
        """Open the store and wire the web app."""
        db = self.config.database
        self.store = CatalogStore(
            db_path=db.path,
            max_connections=db.max_connections,
            timeout=db.timeout,
        )
        logger.info("Database initialized at %s (pool size %d)", db.path, db.max_connections)
        configure_app(fastapi_app, self.config, self.store)

    async def run(self) -> None:
        """Start everything."""
        self.running = True
        self.setup()

        config = uvicorn.Config(
            fastapi_app,
            host=self.config.web.host,
            port=self.config.web.port,
            log_level="info",
        )
        self.server = uvicorn.Server(config)

        logger.info(
            "Solution catalog started on %s:%d (%s)",
            self.config.web.host, self.config.web.port, self.config.web.environment,
        )
        try:
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("Server cancelled")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop serving and close the store."""
        if not self.running:
            return
        self.running = False
        if self.server:
            self.server.should_exit = True
        if self.store:
            self.store.close()
        logger.info("Solution catalog stopped")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Solution Catalog")
    parser.add_argument("-c", "--config", help="Path to config file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    app = SolutionCatalog(config)

    # uvicorn traps SIGINT/SIGTERM; run() closes the store once serving stops
    await app.run()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
