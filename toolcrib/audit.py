# toolcrib/audit.py
from __future__ import annotations

import os
import sqlite3
import logging

from .config import APP_LOG_FILE, LOGS_DIR
from .db import log_audit as db_log_audit

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """File + stderr logging for the whole app. Safe to call more than once."""
    root = logging.getLogger()
    if getattr(root, "_toolcrib_configured", False):
        return

    # Ensure logs directory exists BEFORE configuring logging
    os.makedirs(LOGS_DIR, exist_ok=True)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(APP_LOG_FILE, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    root._toolcrib_configured = True


def log_audit(user: str, action: str) -> None:
    logger.info("User: %s | Action: %s", user, action)
    try:
        db_log_audit(user, action)
    except sqlite3.Error:
        logger.warning("Audit row not written for action: %s", action, exc_info=True)
