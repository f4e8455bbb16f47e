#!/usr/bin/env python3
"""
CARVER Matrix Database Setup Script
===================================

Creates the users, carver_matrices and carver_items tables when they are
missing. Production deployments run `alembic upgrade head` instead; this
script is meant for local databases and CI.

Usage:
    python scripts/setup_database.py [--check-only] [--demo-owner]
"""

import sys
import logging
import argparse
from sqlalchemy import inspect

from carver.db.session import engine
from carver.db.base import Base
from carver.core.database_utils import check_connection, get_db_session, get_missing_tables

# Registers every model with Base.metadata
from carver import models  # noqa: F401
from carver.models.user import AppUser

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEMO_OWNER_EMAIL = "owner@carver.local"


def check_tables_exist():
    """Check if all required tables exist"""
    try:
        missing_tables = get_missing_tables()
        logger.info(f"📋 Required {len(Base.metadata.tables)} tables")
        if missing_tables:
            logger.warning(f"⚠️ Missing tables: {missing_tables}")
            return False
        logger.info("✅ All required tables exist")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to check tables: {e}")
        return False


def create_tables():
    """Create all required tables"""
    try:
        logger.info("🏗️ Creating database tables...")
        Base.metadata.create_all(bind=engine)

        created_tables = inspect(engine).get_table_names()
        logger.info(f"✅ Tables present: {', '.join(created_tables)}")
        return True
    except Exception as e:
        logger.error(f"❌ Failed to create tables: {e}")
        return False


def create_demo_owner():
    """Create a single owner account that matrices can be created under"""
    try:
        with get_db_session() as db:
            existing = db.query(AppUser).filter(AppUser.email == DEMO_OWNER_EMAIL).first()
            if existing:
                logger.info(f"ℹ️ Demo owner already exists with id {existing.id}")
                return True
            owner = AppUser(
                keycloak_id="demo-owner",
                username="demo-owner",
                email=DEMO_OWNER_EMAIL,
                full_name="Demo Owner",
            )
            db.add(owner)
            db.flush()
            logger.info(f"✅ Created demo owner {DEMO_OWNER_EMAIL} with id {owner.id}")
        return True
    except Exception as e:
        logger.error(f"❌ Error creating demo owner: {e}")
        return False


def main():
    """Main setup function"""
    parser = argparse.ArgumentParser(description='CARVER Matrix Database Setup')
    parser.add_argument('--check-only', action='store_true',
                        help='Only check if tables exist, do not create')
    parser.add_argument('--demo-owner', action='store_true',
                        help='Also create a demo owner account')
    args = parser.parse_args()

    logger.info("🚀 CARVER Matrix Database Setup")
    logger.info("=" * 40)

    if not check_connection():
        logger.error("❌ Cannot proceed without database connection")
        sys.exit(1)
    logger.info("✅ Database connection successful")

    tables_exist = check_tables_exist()

    if args.check_only:
        if tables_exist:
            logger.info("✅ Database check passed - all tables exist")
            sys.exit(0)
        logger.error("❌ Database check failed - missing tables")
        sys.exit(1)

    if not tables_exist and not create_tables():
        logger.error("❌ Failed to create tables")
        sys.exit(1)

    if args.demo_owner and not create_demo_owner():
        logger.warning("⚠️ Failed to create demo owner (tables created successfully)")

    if check_tables_exist():
        logger.info("🎉 Database setup completed successfully!")
        logger.info("You can now start the server with:")
        logger.info("  python -m uvicorn carver.main:app --host 0.0.0.0 --port 8000")
    else:
        logger.error("❌ Setup verification failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
