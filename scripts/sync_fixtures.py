#!/usr/bin/env python3
"""
Fixture Refresh Script

Fetches a day's fixtures from API-Football and upserts them, subject to the
same daily quota and minimum spacing as the read path. Schedule it (cron)
ahead of settle_predictions.py so finished matches get their final scores.

Usage:
    # Refresh today's fixtures (UTC)
    python scripts/sync_fixtures.py

    # Refresh a specific day, e.g. matches that finished after midnight
    python scripts/sync_fixtures.py --date=2026-10-18
"""
import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from matchday.core.database import SessionLocal
from matchday.core.errors import MatchdayError
from matchday.services.football.sync_orchestrator import FixtureSyncOrchestrator

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Refresh fixtures from API-Football"
    )
    parser.add_argument(
        '--date',
        type=date.fromisoformat,
        default=None,
        help='UTC date to refresh as YYYY-MM-DD (default: today)'
    )
    return parser.parse_args()


async def run(day):
    db = SessionLocal()
    try:
        result = await FixtureSyncOrchestrator(db).refresh(day=day)
    finally:
        db.close()

    if not result.synced:
        logger.info(
            f"Refresh skipped: provider quota not available "
            f"({result.requests_count} calls today, last at {result.last_request})"
        )
        return

    logger.info(
        f"Refreshed {result.fixtures} fixtures in {result.leagues} leagues "
        f"for {result.day.isoformat()}: {result.statuses}"
    )


def main() -> int:
    args = parse_args()
    try:
        asyncio.run(run(args.date))
    except MatchdayError as e:
        logger.error(f"Refresh failed at step '{e.step}': {e.message} ({e.details})")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
