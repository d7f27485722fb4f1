#!/usr/bin/env python3
"""Initialize the town ledger database."""

import structlog

from ..config import settings
from ..logging_config import configure_logging
from .connection import db

logger = structlog.get_logger()


def main() -> bool:
    """Initialize the database."""
    configure_logging(settings.log_level, settings.log_format)
    try:
        db.initialize()
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        return False

    logger.info("Database initialized", url=settings.database_url)
    return True


if __name__ == "__main__":
    raise SystemExit(0 if main() else 1)
