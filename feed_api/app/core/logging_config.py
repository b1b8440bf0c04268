"""
Logging setup for the Feed API process.

``setup_logging`` is called by ``create_app`` with ``LOG_LEVEL`` and
``LOG_FILE``.  It installs a console handler, and a file handler when a
log file is configured, on the root logger so uvicorn and the app share
one format.  A logger that already has handlers is left as it is.
"""

import logging
from pathlib import Path
from typing import List, Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _build_handlers(logfile: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if logfile:
        log_path = Path(logfile).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    return handlers


def setup_logging(
    level: str = "INFO",
    logfile: Optional[str] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """Attach the Feed API handlers to ``logger_name`` (root by default).

    Parameters
    ----------
    level : str
        Level name such as ``"DEBUG"``; unknown names mean ``INFO``.
    logfile : Optional[str]
        File to append to.  Missing parent directories are created.
    logger_name : Optional[str]
        Logger to configure.  ``None`` is the root logger.

    Returns
    -------
    logging.Logger
        The configured (or already configured) logger.
    """
    target = logging.getLogger(logger_name)
    if target.handlers:
        return target

    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _build_handlers(logfile):
        handler.setFormatter(formatter)
        target.addHandler(handler)
    target.debug("Logging configured (level=%s, file=%s)", level, logfile or "-")
    return target
