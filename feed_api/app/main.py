"""
Main entrypoint for the Feed API.

This module assembles the FastAPI application: it configures logging,
builds the collaborators (database, repositories, token issuer,
notification hub, services), installs the error responder and includes
the versioned routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time as
``app``, e.g.::

    uvicorn feed_api.app.main:app --reload

Tests call ``create_app`` with their own ``Settings`` to get an app with
an isolated database and upload directory.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.v1.endpoints import realtime
from .api.v1.router import router as v1_router
from .core.config import Settings, settings
from .core.db import Database
from .core.errors import register_exception_handlers
from .core.logging_config import setup_logging
from .core.security import TokenIssuer
from .realtime.hub import NotificationHub
from .repositories import PostRepository, UserRepository
from .services.auth_service import AuthService
from .services.file_storage import FileStorage
from .services.pagination import PaginationService
from .services.post_service import PostService


logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    app_settings : Optional[Settings]
        Configuration to use.  Defaults to the module-level ``settings``
        read from the environment.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    cfg = app_settings or settings
    # Initialise logging before anything else so that the setup below can
    # safely log messages.
    setup_logging(cfg.log_level, cfg.log_file or None)
    if cfg.secret_key == "change_me":
        logger.warning("SECRET_KEY is not set; using the insecure default signing secret")

    app = FastAPI(title=cfg.project_name, version=cfg.api_version, debug=cfg.debug)

    db = Database(cfg.database_url)
    users = UserRepository(db)
    posts = PostRepository(db)
    storage = FileStorage(cfg.upload_dir)
    hub = NotificationHub(queue_size=cfg.hub_queue_size)
    issuer = TokenIssuer(cfg.secret_key, default_ttl=cfg.access_token_expire_minutes * 60)

    app.state.settings = cfg
    app.state.db = db
    app.state.hub = hub
    app.state.token_issuer = issuer
    app.state.auth_service = AuthService(users, issuer, cfg.password_hash_iterations)
    app.state.post_service = PostService(posts, storage, hub)
    app.state.pagination = PaginationService(posts, cfg.default_page_size, cfg.max_page_size)

    register_exception_handlers(app)

    # Mount versioned routes under /api/v1.  The notification socket is
    # additionally exposed at the root as /ws.
    app.include_router(v1_router, prefix="/api/v1")
    app.include_router(realtime.router, tags=["realtime"])
    app.mount("/images", StaticFiles(directory=str(storage.root), check_dir=False), name="images")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Apply migrations at startup.  This will create the database
        # file if it does not exist and ensure all tables are up to date.
        await db.init()
        storage.ensure_root()
        hub.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await hub.stop()

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
