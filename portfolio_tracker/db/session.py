# portfolio_tracker/db/session.py
"""Engine and sessions for the configured database."""

from pathlib import Path
from sqlmodel import SQLModel, create_engine, Session

from portfolio_tracker.config import DATABASE_URL

# Local SQLite files need their directory to exist
if DATABASE_URL.startswith("sqlite:///") and ":memory:" not in DATABASE_URL:
    Path(DATABASE_URL.replace("sqlite:///", "")).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)


def get_session() -> Session:
    return Session(engine)


def init_db():
    """Create the ledger, ticker and history tables if they don't exist."""
    # registers the tables on SQLModel.metadata
    from portfolio_tracker.db import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
