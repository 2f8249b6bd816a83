# tests/conftest.py
"""Test configuration and fixtures."""

import pytest
from sqlmodel import Session, create_engine, SQLModel
from sqlmodel.pool import StaticPool

from portfolio_tracker.db.models import TickerQuote, TransactionRecord, PortfolioHistory  # noqa: F401


@pytest.fixture(name="session")
def session_fixture():
    """Create in-memory SQLite test database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="fifo_rows")
def fifo_rows_fixture():
    """BUY 10@100, BUY 10@120, SELL 15@150 in ticker X, deliberately out of order."""
    return [
        {"id": 3, "date": "2024-01-03T00:00:00.000Z", "ticker": "X", "qty": 15, "price": 150, "type": "SELL"},
        {"id": 1, "date": "2024-01-01T00:00:00.000Z", "ticker": "X", "qty": 10, "price": 100, "type": "BUY"},
        {"id": 2, "date": "2024-01-02T00:00:00.000Z", "ticker": "X", "qty": 10, "price": 120, "type": "BUY"},
    ]


@pytest.fixture(name="transactions_sheet")
def transactions_sheet_fixture():
    """Transactions tab as exported from the sheet (header row first)."""
    return [
        ["id", "date", "ticker", "company", "Asset Type", "sector", "qty", "price", "broker", "type"],
        [1700000000001, "2024-01-15T00:00:00.000Z", "INFY", "Infosys", "Equity", "IT", 10, 1500, "Zerodha", "BUY"],
        [1700000000002, "2024-02-01T00:00:00.000Z", "HDFCBANK", "HDFC Bank", "Equity", "Banking", 5, 1600, "Groww", "BUY"],
        [1700000000003, "2024-03-10T00:00:00.000Z", "INFY", "Infosys", "Equity", "IT", 4, 1700, "Zerodha", "SELL"],
        [1700000000004, "2024-03-12T00:00:00.000Z", "GOLDBEES", "Nippon Gold ETF", "ETF", "", 100, 50, "Zerodha", "BUY"],
        ["", "", "", "", "", "", "", "", "", ""],
    ]


@pytest.fixture(name="tickers_sheet")
def tickers_sheet_fixture():
    """Tickers tab: headers Tickers, Current Value, Company Name, Asset Type, Sector."""
    return [
        ["Tickers", "Current Value", "Company Name", "Asset Type", "Sector"],
        ["INFY", 1800, "Infosys", "Equity", "IT"],
        ["HDFCBANK", "1550.5", "HDFC Bank", "Equity", "Banking"],
        ["GOLDBEES", 55, "Nippon Gold ETF", "ETF", "Commodities"],
    ]
