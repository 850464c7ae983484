#!/usr/bin/env python3
"""Fail every running snapshot of a client so a new run can start."""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.log import setup_logging
from vrtl_engine.pipeline.recovery import reset_running

setup_logging()


def main():
    p = argparse.ArgumentParser(description="Reset stuck running snapshots for a client")
    p.add_argument("client_id")
    p.add_argument("--actor", default="operator", help="Recorded in the snapshot error")
    args = p.parse_args()

    result = reset_running(args.client_id, actor=args.actor)
    print(f"Reset {result.reset_count} snapshot(s)")
    for snapshot_id in result.ids:
        print(f"  {snapshot_id}")


if __name__ == "__main__":
    main()
