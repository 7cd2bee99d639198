#!/usr/bin/env python3
"""
Initialize default database values.
This script is run on startup to seed the default roster on an empty database.
"""

import asyncio
import logging
import os

from teamplanner.database import db
from teamplanner.services import data_service
from teamplanner.utils.constants import DEFAULT_PLAYER_NAMES

logger = logging.getLogger(__name__)


async def init_defaults():
    """Initialize default database values."""
    if os.getenv("SEED_DEFAULT_PLAYERS", "true").lower() != "true":
        logger.info("Default roster seeding disabled")
        return

    async with db.AsyncSessionLocal() as session:
        created = await data_service.seed_players_if_needed(session, DEFAULT_PLAYER_NAMES)

    if created:
        logger.info(f"✓ Seeded database with {created} default players")
    else:
        logger.info("✓ Players already present, skipping seed")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_defaults())
