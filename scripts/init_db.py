#!/usr/bin/env python3
"""
Database initialization script for SkinTrack
Creates the routine item, concern tracking and rating tables
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from app.config import get_settings
from app.database import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Initialize the database"""
    try:
        settings = get_settings()
        logger.info(f"Creating tables at {settings.database_url}")
        logger.info(
            f"Default tracking window: {settings.default_required_days} days, "
            f"overrides: {settings.concern_required_days or 'none'}"
        )

        await init_db()
        logger.info("Database initialized")

    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}", exc_info=True)
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
