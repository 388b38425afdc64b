#!/usr/bin/env python3
"""
Apply Alembic migrations for the PTO schema.

Usage:
    python run_migrations.py                    # upgrade to head
    python run_migrations.py upgrade 001        # upgrade to a revision
    python run_migrations.py downgrade base     # drop the PTO schema
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import logging
from alembic.config import Config
from alembic import command
from ptoflow.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).parent / "alembic.ini"
COMMANDS = {"upgrade": command.upgrade, "downgrade": command.downgrade}


def run_migrations(direction: str = "upgrade", revision: str = "head") -> int:
    """Move the schema to ``revision``. Returns a process exit code."""
    if direction not in COMMANDS:
        logger.error(f"Unknown migration direction '{direction}', expected one of {sorted(COMMANDS)}")
        return 2

    # Host part only; credentials stay out of the logs
    target = settings.DATABASE_URL.rsplit("@", 1)[-1]
    logger.info(f"Running {direction} to {revision} on {target}...")

    try:
        COMMANDS[direction](Config(str(ALEMBIC_INI)), revision)
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        return 1

    logger.info("Migrations completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations(*sys.argv[1:3]))
