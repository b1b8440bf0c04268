"""Entry point for the Feed API server.

Starts uvicorn with the application from ``feed_api.app.main``.  Host
and port come from the ``HOST`` and ``PORT`` environment variables (see
``feed_api.app.core.config``).

Usage:
    python run.py
"""
import asyncio
import logging

from uvicorn import Config, Server

from feed_api.app.core.config import settings
from feed_api.app.main import app


async def main() -> None:
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
