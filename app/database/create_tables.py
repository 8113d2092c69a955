#!/usr/bin/env python3
"""
Script to create the trip, registration and gift card tables if they don't exist
"""

import sys
import os

# Add the project root to the Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from app.models import *  # noqa: F401,F403
from app.database.session import engine, Base
from app.core.logging_config import setup_logging, get_logger

logger = get_logger(__name__)


def create_tables():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    setup_logging(force_configure=True)
    create_tables()
