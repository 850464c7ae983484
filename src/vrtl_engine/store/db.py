"""SQLite database connection and schema management.

Provides get_db_connection() context manager and init_db() for schema creation.
Stores clients, competitors, snapshots and per-call provider responses.
"""

import sqlite3
from ..config import get_settings
from contextlib import contextmanager

settings = get_settings()

@contextmanager
def get_db_connection():
    # One connection per call; snapshot runs persist from worker threads
    conn = sqlite3.connect(settings.DB_PATH, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    schema = """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,
        agency_id TEXT NOT NULL,
        name TEXT NOT NULL,
        website TEXT,
        industry TEXT DEFAULT '',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS competitors (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        client_id TEXT NOT NULL REFERENCES clients(id),
        name TEXT NOT NULL,
        website TEXT
    );

    CREATE TABLE IF NOT EXISTS snapshots (
        id TEXT PRIMARY KEY,
        client_id TEXT NOT NULL REFERENCES clients(id),
        agency_id TEXT NOT NULL,
        prompt_pack_version TEXT NOT NULL,
        status TEXT NOT NULL CHECK (status IN ('running', 'complete', 'failed')),
        started_at TEXT NOT NULL,
        completed_at TEXT,
        overall_score INTEGER,
        score_by_provider TEXT NOT NULL DEFAULT '{}',
        score_breakdown TEXT NOT NULL DEFAULT '{}',
        error TEXT
    );

    -- At most one running snapshot per client
    CREATE UNIQUE INDEX IF NOT EXISTS snapshots_one_running_per_client
        ON snapshots(client_id) WHERE status = 'running';

    CREATE INDEX IF NOT EXISTS snapshots_client_started
        ON snapshots(client_id, started_at);

    CREATE TABLE IF NOT EXISTS responses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        snapshot_id TEXT NOT NULL REFERENCES snapshots(id),
        agency_id TEXT,
        provider TEXT NOT NULL,
        prompt_ordinal INTEGER NOT NULL,
        prompt_key TEXT NOT NULL,
        prompt_text TEXT NOT NULL,
        prompt_pack_version TEXT NOT NULL,
        model_used TEXT,
        raw_text TEXT NOT NULL DEFAULT '',
        parse_ok INTEGER NOT NULL,
        parse_status TEXT NOT NULL,
        parsed_json TEXT,
        error TEXT,
        latency_ms INTEGER,
        created_at TEXT NOT NULL,
        UNIQUE(snapshot_id, provider, prompt_ordinal)
    );
    """
    with get_db_connection() as conn:
        conn.executescript(schema)
        conn.commit()
