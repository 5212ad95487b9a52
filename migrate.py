#!/usr/bin/env python3
"""
Database Migration Script for SkillWeave API
============================================

Creates every SkillWeave table (users, sessions, activities, portfolios,
analytics, templates, template usage and "Profile Details") in the
Supabase Postgres database. Existing tables are left untouched.

Usage:
    python migrate.py

Requirements:
    - DATABASE_URL set (environment or .env)
    - Package installed (pip install -e .)
"""

import asyncio
import sys

from skillweave.config import settings
from skillweave.core.database import close_db, init_db
from skillweave.core.logging import configure_logging, get_logger

configure_logging(log_level="INFO", log_file="migration.log", enable_file=True)
logger = get_logger(__name__)


async def main():
    """Main migration function."""
    try:
        logger.info("🚀 Starting database migration...")
        logger.info(f"Database URL: {settings.DATABASE_URL[:20]}...")

        await init_db()

        logger.info("✅ Database migration completed successfully!")
    except Exception as e:
        logger.error(f"❌ Migration failed: {e}")
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
