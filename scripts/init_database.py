#!/usr/bin/env python3
"""
Initialize database tables from SQLAlchemy models.

Creates every Matchday table (leagues, matches, predictions, user_stats,
api_football_requests, popular_matches_cache) that does not exist yet.
"""
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import logging

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """Create all database tables from models."""
    from matchday.core.database import engine, init_db

    logger.info(f"Creating database tables on {engine.url.render_as_string(hide_password=True)}")

    init_db(bind=engine)

    logger.info("All database tables created successfully")


if __name__ == "__main__":
    main()
