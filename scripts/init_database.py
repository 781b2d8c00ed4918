#!/usr/bin/env python3
"""
Initialize database tables from SQLAlchemy models.

Creates the match tables and the api_keys table if they do not exist.
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
    from app.core.config import settings
    from app.core.database import Database

    database = Database(settings.DATABASE_URL).init()
    database.ping()

    logger.info("Creating database tables from SQLAlchemy models...")
    database.create_all()
    database.dispose()

    logger.info("✓ All database tables created successfully!")


if __name__ == "__main__":
    main()
