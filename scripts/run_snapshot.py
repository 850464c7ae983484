#!/usr/bin/env python3
"""
Run one visibility snapshot for a client and print the resulting scores.
Exits 1 if the snapshot ends up failed, 2 if it could not be started.
"""
import argparse
import sys
import logging
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.errors import VrtlError
from vrtl_engine.log import setup_logging
from vrtl_engine.pipeline.run import orchestrator
from vrtl_engine.schemas.snapshot import SnapshotStatus
from vrtl_engine.store.repo import Repo

setup_logging()
logger = logging.getLogger(__name__)


def main():
    p = argparse.ArgumentParser(description="Run a snapshot for a client")
    p.add_argument("client_id")
    args = p.parse_args()

    try:
        snapshot_id = orchestrator.start_run(args.client_id)
    except VrtlError as e:
        logger.error(str(e))
        sys.exit(2)

    snapshot = Repo.get_snapshot(snapshot_id)
    print("\n" + "=" * 60)
    print(f"Snapshot {snapshot.id}: {snapshot.status.value}")
    print("=" * 60)
    if snapshot.status == SnapshotStatus.FAILED:
        print(f"Error: {snapshot.error}")
        sys.exit(1)

    print(f"Overall score: {snapshot.overall_score}")
    for provider, score in snapshot.score_by_provider.items():
        print(f"  {provider:<10} {score}")
    print("=" * 60)


if __name__ == "__main__":
    main()
