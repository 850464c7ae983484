"""Stuck-run recovery.

A snapshot whose process died mid-run stays `running` and blocks the client.
Recovery only flips the row; in-flight provider calls are not cancelled and
any rows they write afterwards are harmless.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import get_settings
from ..log import get_logger
from ..schemas.snapshot import ResetResult
from ..store.repo import Repo

logger = get_logger("recovery")
settings = get_settings()


def reset_running(client_id: str, actor: str = "operator") -> ResetResult:
    """Fail every running snapshot of the client. Idempotent."""
    ids = Repo.fail_running(client_id, f"manual reset ({actor})")
    if ids:
        logger.warning(f"Reset {len(ids)} running snapshot(s) for client {client_id} by {actor}: {ids}")
    else:
        logger.info(f"No running snapshots to reset for client {client_id}")
    return ResetResult(reset_count=len(ids), ids=ids)


def reset_stale(client_id: str, now: Optional[datetime] = None) -> ResetResult:
    """Fail running snapshots older than SNAPSHOT_STALE_RUNNING_MINUTES (0 disables)."""
    minutes = settings.SNAPSHOT_STALE_RUNNING_MINUTES
    if minutes <= 0:
        return ResetResult(reset_count=0, ids=[])

    now = now or datetime.now(timezone.utc)
    cutoff = (now - timedelta(minutes=minutes)).isoformat(timespec="microseconds")
    ids = Repo.fail_stale_running(client_id, cutoff, f"auto-reset: stale>{minutes}m ({{id}})")
    for snapshot_id in ids:
        logger.warning(f"Stale running snapshot auto-failed: {snapshot_id} (client {client_id})")
    return ResetResult(reset_count=len(ids), ids=ids)
