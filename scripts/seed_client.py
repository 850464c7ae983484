#!/usr/bin/env python3
"""
Create a client (and optionally its competitors) so snapshots can be run.

    python scripts/seed_client.py --name "Acme Dental" --industry "dental clinic" \
        --agency agency-1 --competitor "Bright Smiles" --competitor "City Dental"
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vrtl_engine.log import setup_logging
from vrtl_engine.store.db import init_db
from vrtl_engine.store.repo import Repo

setup_logging()


def main():
    p = argparse.ArgumentParser(description="Seed a client and its competitors")
    p.add_argument("--name", required=True, help="Brand name")
    p.add_argument("--industry", default="", help="Industry / category")
    p.add_argument("--agency", required=True, help="Owning agency id")
    p.add_argument("--website", default=None)
    p.add_argument("--competitor", action="append", default=[], help="Competitor name (repeatable)")
    args = p.parse_args()

    init_db()
    client = Repo.create_client(
        name=args.name, agency_id=args.agency, industry=args.industry, website=args.website
    )
    for name in args.competitor:
        Repo.add_competitor(client.id, name)

    print(f"Client {client.name}: {client.id}")
    if args.competitor:
        print(f"Competitors: {', '.join(args.competitor)}")


if __name__ == "__main__":
    main()
