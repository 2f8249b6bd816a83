# portfolio_tracker/db/models.py
"""
SQLModel definitions for the portfolio tracker.
Designed for SQLite locally, PostgreSQL in production.
"""

from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy import BigInteger, DateTime
from sqlmodel import SQLModel, Field, Column

from portfolio_tracker.domain.models import parse_date


def utcnow() -> datetime:
    return datetime.now(pytz.UTC)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    # SQLite hands timezone-aware columns back naive; values are always stored in UTC
    dt = parse_date(value)
    return dt.isoformat() if dt else None


class TransactionRecord(SQLModel, table=True):
    """A recorded BUY/SELL transaction (one row of the transactions ledger)."""
    __tablename__ = "portfolio_transaction"

    # Millisecond timestamp assigned on append, or the id carried by an imported sheet row
    id: int = Field(sa_column=Column(BigInteger, primary_key=True, autoincrement=False))

    date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), index=True)
    )
    ticker: str = Field(default="", index=True)
    company: str = Field(default="")
    asset_type: str = Field(default="")
    sector: str = Field(default="")

    qty: float = Field(default=0.0)
    price: float = Field(default=0.0)
    broker: str = Field(default="")
    type: str = Field(default="BUY")  # BUY or SELL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": _isoformat(self.date),
            "ticker": self.ticker,
            "company": self.company,
            "asset_type": self.asset_type,
            "sector": self.sector,
            "qty": self.qty,
            "price": self.price,
            "broker": self.broker,
            "type": self.type,
        }


class TickerQuote(SQLModel, table=True):
    """Ticker reference data; current_value is the live unit price."""
    __tablename__ = "ticker_quote"

    ticker: str = Field(primary_key=True)
    current_value: float = Field(default=0.0)
    company_name: str = Field(default="")
    asset_type: str = Field(default="")
    sector: str = Field(default="")
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True))
    )

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "current_value": self.current_value,
            "company_name": self.company_name,
            "asset_type": self.asset_type,
            "sector": self.sector,
        }


class PortfolioHistory(SQLModel, table=True):
    """Point-in-time portfolio value, appended by SnapshotRecorder."""
    __tablename__ = "portfolio_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    recorded_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), index=True)
    )
    recorded_local: str = Field(default="")  # display string in report timezone

    current_value: float = Field(default=0.0)
    profit_percentage: float = Field(default=0.0)

    def to_dict(self) -> dict:
        return {
            "date": self.recorded_local,
            "recorded_at": _isoformat(self.recorded_at),
            "current_value": self.current_value,
            "profit_percentage": self.profit_percentage,
        }
