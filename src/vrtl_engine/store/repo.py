"""Repository pattern for database operations.

Provides the persistence operations the snapshot engine relies on. Each call
is individually atomic; no transaction spans calls. The "one running snapshot
per client" lock is taken inside an immediate transaction and backed by a
partial unique index.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from .db import get_db_connection
from ..errors import SnapshotAlreadyRunning
from ..schemas.extraction import ExtractionRecord
from ..schemas.snapshot import Client, Competitor, ParseStatus, ProviderResponse, Snapshot, SnapshotStatus
import logging

logger = logging.getLogger("repo")

def utc_now_iso() -> str:
    # Fixed width so ISO strings compare correctly in SQL
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")

def _snapshot_from_row(row: sqlite3.Row) -> Snapshot:
    return Snapshot(
        id=row["id"],
        client_id=row["client_id"],
        agency_id=row["agency_id"],
        prompt_pack_version=row["prompt_pack_version"],
        status=SnapshotStatus(row["status"]),
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        overall_score=row["overall_score"],
        score_by_provider=json.loads(row["score_by_provider"] or "{}"),
        score_breakdown=json.loads(row["score_breakdown"] or "{}"),
        error=row["error"],
    )

def _response_from_row(row: sqlite3.Row) -> ProviderResponse:
    parsed_json = json.loads(row["parsed_json"]) if row["parsed_json"] else None
    status = ParseStatus(row["parse_status"])
    extraction = ExtractionRecord.model_validate(parsed_json) if status == ParseStatus.PARSED and parsed_json else None
    return ProviderResponse(
        snapshot_id=row["snapshot_id"],
        agency_id=row["agency_id"],
        provider=row["provider"],
        prompt_ordinal=row["prompt_ordinal"],
        prompt_key=row["prompt_key"],
        prompt_text=row["prompt_text"],
        prompt_pack_version=row["prompt_pack_version"],
        model_used=row["model_used"],
        raw_text=row["raw_text"],
        parse_ok=bool(row["parse_ok"]),
        parse_status=status,
        extraction=extraction,
        parsed_json=parsed_json,
        error=row["error"],
        latency_ms=row["latency_ms"],
        created_at=row["created_at"],
    )

class Repo:
    # ------------------------------------------------------------------
    # Clients & competitors
    # ------------------------------------------------------------------
    @staticmethod
    def create_client(
        name: str,
        agency_id: str,
        industry: str = "",
        website: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> Client:
        client = Client(
            id=client_id or str(uuid.uuid4()),
            agency_id=agency_id,
            name=name,
            industry=industry,
            website=website,
        )
        with get_db_connection() as conn:
            conn.execute(
                """
                INSERT INTO clients (id, agency_id, name, website, industry, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (client.id, client.agency_id, client.name, client.website, client.industry, utc_now_iso())
            )
            conn.commit()
        return client

    @staticmethod
    def add_competitor(client_id: str, name: str, website: Optional[str] = None) -> Competitor:
        with get_db_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO competitors (client_id, name, website) VALUES (?, ?, ?)",
                (client_id, name, website)
            )
            conn.commit()
            return Competitor(id=cursor.lastrowid, client_id=client_id, name=name, website=website)

    @staticmethod
    def get_client(client_id: str) -> Optional[Client]:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT id, agency_id, name, website, industry FROM clients WHERE id = ?",
                (client_id,)
            ).fetchone()
            if not row:
                return None
            return Client(
                id=row["id"],
                agency_id=row["agency_id"],
                name=row["name"],
                website=row["website"],
                industry=row["industry"] or "",
            )

    @staticmethod
    def get_competitors(client_id: str) -> List[Competitor]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT id, client_id, name, website FROM competitors WHERE client_id = ? ORDER BY name ASC",
                (client_id,)
            ).fetchall()
            return [Competitor(**dict(r)) for r in rows]

    @staticmethod
    def get_competitor_names(client_id: str) -> List[str]:
        """Names in insertion order, as they are interpolated into prompts."""
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT name FROM competitors WHERE client_id = ? ORDER BY id ASC",
                (client_id,)
            ).fetchall()
            return [r["name"] for r in rows]

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @staticmethod
    def create_snapshot(client_id: str, agency_id: str, prompt_pack_version: str) -> Snapshot:
        """
        Insert a running snapshot unless the client already has one.
        Raises SnapshotAlreadyRunning on conflict.
        """
        snapshot_id = str(uuid.uuid4())
        started_at = utc_now_iso()
        with get_db_connection() as conn:
            # Immediate transaction: no other writer between check and insert
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT id FROM snapshots WHERE client_id = ? AND status = 'running' LIMIT 1",
                    (client_id,)
                ).fetchone()
                if row:
                    conn.rollback()
                    logger.info(f"Snapshot lock hit for client {client_id} (running {row['id']})")
                    raise SnapshotAlreadyRunning(client_id, row["id"])

                conn.execute(
                    """
                    INSERT INTO snapshots (id, client_id, agency_id, prompt_pack_version, status, started_at)
                    VALUES (?, ?, ?, ?, 'running', ?)
                    """,
                    (snapshot_id, client_id, agency_id, prompt_pack_version, started_at)
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise SnapshotAlreadyRunning(client_id) from e

        return Snapshot(
            id=snapshot_id,
            client_id=client_id,
            agency_id=agency_id,
            prompt_pack_version=prompt_pack_version,
            status=SnapshotStatus.RUNNING,
            started_at=started_at,
        )

    @staticmethod
    def get_snapshot(snapshot_id: str) -> Optional[Snapshot]:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM snapshots WHERE id = ?", (snapshot_id,)).fetchone()
            return _snapshot_from_row(row) if row else None

    @staticmethod
    def get_running_snapshots(client_id: str) -> List[Snapshot]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM snapshots WHERE client_id = ? AND status = 'running' ORDER BY started_at ASC",
                (client_id,)
            ).fetchall()
            return [_snapshot_from_row(r) for r in rows]

    @staticmethod
    def latest_snapshot_started_at(client_id: str) -> Optional[str]:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT started_at FROM snapshots WHERE client_id = ? ORDER BY started_at DESC LIMIT 1",
                (client_id,)
            ).fetchone()
            return row["started_at"] if row else None

    @staticmethod
    def count_agency_snapshots_since(agency_id: str, since_iso: str) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM snapshots WHERE agency_id = ? AND started_at >= ?",
                (agency_id, since_iso)
            ).fetchone()
            return int(row["n"])

    @staticmethod
    def complete_snapshot(
        snapshot_id: str,
        overall_score: int,
        score_by_provider: Dict[str, int],
        score_breakdown: Dict[str, float],
    ) -> bool:
        """
        Finalize a running snapshot as complete.
        Returns False when the snapshot was no longer running (e.g. reset meanwhile).
        """
        with get_db_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE snapshots
                SET status = 'complete', completed_at = ?, overall_score = ?,
                    score_by_provider = ?, score_breakdown = ?
                WHERE id = ? AND status = 'running'
                """,
                (
                    utc_now_iso(),
                    overall_score,
                    json.dumps(score_by_provider),
                    json.dumps(score_breakdown),
                    snapshot_id,
                )
            )
            conn.commit()
            return cursor.rowcount == 1

    @staticmethod
    def fail_snapshot(snapshot_id: str, error: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE snapshots SET status = 'failed', error = ?, completed_at = ?
                WHERE id = ? AND status = 'running'
                """,
                (str(error), utc_now_iso(), snapshot_id)
            )
            conn.commit()
            return cursor.rowcount == 1

    @staticmethod
    def fail_running(client_id: str, error: str) -> List[str]:
        """Fail every running snapshot of a client. Returns the ids actually updated."""
        with get_db_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                "SELECT id FROM snapshots WHERE client_id = ? AND status = 'running' ORDER BY started_at ASC",
                (client_id,)
            ).fetchall()
            ids = [r["id"] for r in rows]
            if not ids:
                conn.rollback()
                return []
            now = utc_now_iso()
            conn.executemany(
                "UPDATE snapshots SET status = 'failed', error = ?, completed_at = ? WHERE id = ? AND status = 'running'",
                [(error, now, snapshot_id) for snapshot_id in ids]
            )
            conn.commit()
            return ids

    @staticmethod
    def fail_stale_running(client_id: str, cutoff_iso: str, error_template: str) -> List[str]:
        """
        Fail running snapshots started before cutoff_iso.
        error_template is formatted with the snapshot id.
        """
        with get_db_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            rows = conn.execute(
                """
                SELECT id FROM snapshots
                WHERE client_id = ? AND status = 'running' AND started_at < ?
                """,
                (client_id, cutoff_iso)
            ).fetchall()
            ids = [r["id"] for r in rows]
            if not ids:
                conn.rollback()
                return []
            now = utc_now_iso()
            conn.executemany(
                "UPDATE snapshots SET status = 'failed', error = ?, completed_at = ? WHERE id = ? AND status = 'running'",
                [(error_template.format(id=snapshot_id), now, snapshot_id) for snapshot_id in ids]
            )
            conn.commit()
            return ids

    # ------------------------------------------------------------------
    # Provider responses (append-only)
    # ------------------------------------------------------------------
    @staticmethod
    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_fixed(0.5),
        reraise=True
    )
    def insert_response(response: ProviderResponse) -> int:
        parsed_json: Optional[Any] = response.parsed_json
        with get_db_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO responses (
                    snapshot_id, agency_id, provider, prompt_ordinal, prompt_key, prompt_text,
                    prompt_pack_version, model_used, raw_text, parse_ok, parse_status,
                    parsed_json, error, latency_ms, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    response.snapshot_id,
                    response.agency_id,
                    response.provider,
                    response.prompt_ordinal,
                    response.prompt_key,
                    response.prompt_text,
                    response.prompt_pack_version,
                    response.model_used,
                    response.raw_text,
                    1 if response.parse_ok else 0,
                    response.parse_status.value,
                    json.dumps(parsed_json) if parsed_json is not None else None,
                    response.error,
                    response.latency_ms,
                    response.created_at or utc_now_iso(),
                )
            )
            conn.commit()
            return cursor.lastrowid

    @staticmethod
    def list_responses(snapshot_id: str) -> List[ProviderResponse]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM responses WHERE snapshot_id = ? ORDER BY prompt_ordinal ASC, provider ASC",
                (snapshot_id,)
            ).fetchall()
            return [_response_from_row(r) for r in rows]
