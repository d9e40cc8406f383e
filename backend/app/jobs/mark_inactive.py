# app/jobs/mark_inactive.py
"""
Mark dormant accounts inactive.

Usage:
    python -m app.jobs.mark_inactive             # run the sweep
    python -m app.jobs.mark_inactive --dry-run   # only report what would change
    python -m app.jobs.mark_inactive --stats     # print inactivity statistics

Exit code 0 on success, 1 when some accounts could not be updated,
2 when another sweep holds the lock.
"""
import argparse
import asyncio
import json
import logging
import sys

from app.core.db import close_db, init_db
from app.services.inactivity import InactivitySweep
from app.services.sessions import SessionManager

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m app.jobs.mark_inactive",
        description="Mark accounts inactive after the dormancy period without login.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    parser.add_argument("--stats", action="store_true", help="Show inactivity statistics only")
    return parser


async def run(args: argparse.Namespace) -> int:
    sweep = InactivitySweep(sessions=SessionManager())

    if args.stats:
        stats = await sweep.stats()
        print(json.dumps(stats.to_dict(), indent=2))
        return 0

    report = await sweep.run(dry_run=args.dry_run)
    if report is None:
        print("Another inactivity sweep is running; nothing done.")
        return 2

    print(json.dumps(report.to_dict(), indent=2, default=str))
    return 1 if report.errors else 0


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    await init_db()
    try:
        return await run(args)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(main()))
