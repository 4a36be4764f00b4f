# toolcrib/bootstrap.py
from __future__ import annotations

import os
import logging

from .config import DATA_DIR, LOGS_DIR, UPLOADS_DIR, SETTINGS_FILE, DEFAULT_SETTINGS
from .db import init_db, get_meta, set_meta
from .storage import save_json

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"


def _ensure_dirs() -> None:
    os.makedirs(DATA_DIR, exist_ok=True)
    os.makedirs(LOGS_DIR, exist_ok=True)
    os.makedirs(UPLOADS_DIR, exist_ok=True)


def _write_json_if_missing(path: str, default_obj) -> None:
    if os.path.exists(path):
        return
    save_json(path, default_obj)
    logger.info("Created %s", path)


# ----------------------------
# Public entry point
# ----------------------------
def ensure_app_initialized() -> None:
    """
    Safe to call multiple times. This is the one place that prepares the
    data folder, database schema and settings file.
    """
    _ensure_dirs()
    init_db()
    if get_meta("schema_version") != SCHEMA_VERSION:
        set_meta("schema_version", SCHEMA_VERSION)
        logger.info("Database schema at version %s", SCHEMA_VERSION)
    _write_json_if_missing(SETTINGS_FILE, DEFAULT_SETTINGS)
