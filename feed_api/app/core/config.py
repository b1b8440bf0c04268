"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from environment
variables.  Defaults are provided for all fields so that the API can be
started locally without any setup.  In a production deployment you
should at least override ``SECRET_KEY`` and ``DATABASE_URL``.

The signing secret is read once when the application is created and is
never changed while the process runs.  Rotating it (restarting with a
new ``SECRET_KEY``) invalidates every token issued before.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Feed API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Work factor for new password hashes.  Existing hashes carry their own
    # iteration count and keep verifying when this value changes.
    password_hash_iterations: int = int(os.getenv("PASSWORD_HASH_ITERATIONS", "100000"))

    # Path to the SQLite database file.  Relative paths are resolved
    # against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "feed.db")

    # Directory where uploaded images are written.  Served under ``/images``.
    upload_dir: str = os.getenv("UPLOAD_DIR", "images")

    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # Per-connection outbound buffer of the notification hub.  A client that
    # falls this many events behind starts losing events.
    hub_queue_size: int = int(os.getenv("HUB_QUEUE_SIZE", "100"))

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before importing this module.
settings = Settings()
