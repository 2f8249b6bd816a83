# portfolio_tracker/config.py
"""Environment-driven settings."""

import logging
import os

# Get database URL from environment, default to local SQLite
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portfolio_tracker.db")

# Timezone used when bucketing transactions and snapshots by calendar day
REPORT_TIMEZONE = os.getenv("PORTFOLIO_REPORT_TIMEZONE", "Asia/Kolkata")

LOG_LEVEL = os.getenv("PORTFOLIO_LOG_LEVEL", "INFO")


def configure_logging(level: str = None) -> None:
    """Configure root logging once for scripts and notebooks."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
