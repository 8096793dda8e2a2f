#!/usr/bin/env python3
"""
Fixture Pruning Script

Deletes stored fixtures and leagues the sync no longer refreshes. Fixtures
that have predictions are always kept.

Usage:
    # Preview what a 30 day prune would delete
    python scripts/prune_fixtures.py --days=30 --dry-run

    # Delete fixtures and leagues not updated in the last 30 days
    python scripts/prune_fixtures.py --days=30

    # Delete every league and every fixture without predictions
    python scripts/prune_fixtures.py --all
"""
import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from matchday.core.database import SessionLocal
from matchday.repositories import FixtureRepository
from matchday.utils.timezone import utcnow

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete stale fixtures and leagues"
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        '--days',
        type=int,
        help='Delete fixtures and leagues not updated in the last N days'
    )
    mode_group.add_argument(
        '--all',
        action='store_true',
        help='Delete all leagues and all fixtures without predictions'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Report counts without deleting anything'
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if args.days is not None and args.days < 1:
        logger.error("--days must be at least 1")
        return 2

    db = SessionLocal()
    try:
        repo = FixtureRepository(db)

        if args.all:
            counts = repo.clear_all(dry_run=args.dry_run)
        else:
            before = utcnow() - timedelta(days=args.days)
            counts = repo.prune_stale(before, dry_run=args.dry_run)

        verb = "Would delete" if args.dry_run else "Deleted"
        logger.info(f"{verb} {counts['matches']} fixtures and {counts['leagues']} leagues")
        return 0

    except Exception as e:
        logger.error(f"Error pruning fixtures: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
