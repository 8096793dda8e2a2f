#!/usr/bin/env python3
"""
Settlement Script

Scores every unsettled prediction whose match has finished with a final
score, then refreshes user stats and leaderboard ranks. Meant to be run by
an external scheduler (cron) after fixtures have been refreshed.

Usage:
    # One settlement run
    python scripts/settle_predictions.py

    # Recompute user_stats for every user (no settlement)
    python scripts/settle_predictions.py --rebuild-stats
"""
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from matchday.core.database import SessionLocal
from matchday.core.errors import MatchdayError
from matchday.services.settlement import SettlementService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Settle predictions for finished matches"
    )
    parser.add_argument(
        '--rebuild-stats',
        action='store_true',
        help='Recompute user_stats and ranks for every user instead of settling'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    db = SessionLocal()
    try:
        service = SettlementService(db)

        if args.rebuild_stats:
            users = service.refresh_user_stats()
            logger.info(f"Rebuilt stats for {users} users")
            return 0

        result = service.run()

        logger.info("=" * 60)
        logger.info("Settlement Results")
        logger.info("=" * 60)
        logger.info(f"Matches processed: {result.processed_matches}")
        logger.info(f"Predictions settled: {result.settled}")
        logger.info(f"Already settled (skipped): {result.skipped}")
        logger.info(f"Failed: {result.failed}")
        logger.info(f"User stats refreshed: {result.stats_updated}")
        logger.info("=" * 60)

        return 1 if result.failed else 0

    except MatchdayError as e:
        logger.error(f"Settlement failed at step '{e.step}': {e.message} ({e.details})")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
