#!/usr/bin/env python3
"""Print a snapshot's detail (summary, scores and responses) as JSON."""
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.log import setup_logging
from vrtl_engine.pipeline.detail import get_snapshot_detail

setup_logging()


def main():
    p = argparse.ArgumentParser(description="Show one snapshot")
    p.add_argument("snapshot_id")
    p.add_argument("--debug", action="store_true", help="Include raw text (needs VRTL_ENABLE_DEBUG_RESPONSES)")
    args = p.parse_args()

    detail = get_snapshot_detail(args.snapshot_id, include_debug=args.debug)
    if detail is None:
        print(f"Snapshot not found: {args.snapshot_id}")
        sys.exit(1)
    print(json.dumps(detail, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
