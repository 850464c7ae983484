#!/usr/bin/env python3
"""Create the SQLite schema at DB_PATH (idempotent)."""
import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.config import get_settings
from vrtl_engine.log import setup_logging
from vrtl_engine.store.db import init_db

setup_logging()

if __name__ == "__main__":
    logging.info(f"Initializing database at {get_settings().DB_PATH}...")
    init_db()
    logging.info("Database initialized.")
