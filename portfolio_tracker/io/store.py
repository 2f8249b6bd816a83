# portfolio_tracker/io/store.py
"""Transaction and ticker stores backed by SQLModel tables."""

from typing import Any, Dict, List, Mapping, Optional
import logging
import time

from sqlalchemy import func
from sqlmodel import Session, select

from portfolio_tracker.db.models import TickerQuote, TransactionRecord, utcnow
from portfolio_tracker.domain.models import (
    Transaction,
    normalize_type,
    parse_date,
    to_float,
)
from portfolio_tracker.io.sheet_parser import ParsedTicker, SheetParser

logger = logging.getLogger(__name__)

# Normalized input key -> TransactionRecord column
_TRANSACTION_FIELDS = {
    "date": "date",
    "ticker": "ticker",
    "company": "company",
    "assettype": "asset_type",
    "sector": "sector",
    "qty": "qty",
    "price": "price",
    "broker": "broker",
    "type": "type",
}


def _coerce(column: str, value: Any) -> Any:
    if column == "date":
        return parse_date(value)
    if column in ("qty", "price"):
        return to_float(value)
    if column == "type":
        return normalize_type(value)
    if column == "ticker":
        return str(value or "").strip().upper()
    return str(value or "").strip()


def _parse_id(value: Any) -> Optional[int]:
    """Sheet ids arrive as ints, floats or strings; None when unusable."""
    try:
        record_id = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None
    return record_id if record_id > 0 else None


class TransactionStore:
    """List, append, update and delete recorded transactions."""

    @staticmethod
    def list_all(session: Session) -> List[TransactionRecord]:
        """All transactions in insertion order."""
        stmt = select(TransactionRecord).order_by(TransactionRecord.id)
        return list(session.exec(stmt).all())

    @staticmethod
    def append(session: Session, data: Mapping[str, Any]) -> TransactionRecord:
        """
        Record a new transaction.

        The id is a millisecond timestamp, bumped past the current maximum
        so ids stay strictly increasing. Blank company/sector/asset type are
        filled from the ticker's reference row when one exists.
        """
        tx = Transaction.from_record(data)
        return TransactionStore._insert(session, tx, TransactionStore._next_id(session))

    @staticmethod
    def update_by_id(
        session: Session,
        transaction_id: int,
        data: Mapping[str, Any],
    ) -> Optional[TransactionRecord]:
        """
        Overwrite the provided fields of a transaction. The id never changes.

        Returns:
            Updated record or None if not found
        """
        record = session.get(TransactionRecord, transaction_id)
        if record is None:
            return None

        for key, value in data.items():
            column = _TRANSACTION_FIELDS.get(str(key).replace(" ", "").replace("_", "").lower())
            if column:
                setattr(record, column, _coerce(column, value))

        session.add(record)
        session.commit()
        session.refresh(record)
        logger.info("Updated transaction %s", transaction_id)
        return record

    @staticmethod
    def delete_by_id(session: Session, transaction_id: int) -> bool:
        """Delete a transaction; False if it did not exist."""
        record = session.get(TransactionRecord, transaction_id)
        if record is None:
            return False
        try:
            session.delete(record)
            session.commit()
        except Exception:
            session.rollback()
            raise
        logger.info("Deleted transaction %s", transaction_id)
        return True

    @staticmethod
    def import_rows(session: Session, values: List[List[Any]]) -> int:
        """
        Load a transactions sheet export (header row first).

        Rows keep the id recorded in the sheet; rows without a usable id get
        a fresh one. A row whose id is already stored is skipped.

        Returns:
            Number of rows stored
        """
        transactions = SheetParser.parse_transactions(SheetParser.rows_to_records(values))
        stored = 0
        for tx in transactions:
            record_id = _parse_id(tx.id)
            if record_id is None:
                record_id = TransactionStore._next_id(session)
            elif session.get(TransactionRecord, record_id) is not None:
                logger.warning("Skipping transaction %s: id already stored", record_id)
                continue
            TransactionStore._insert(session, tx, record_id)
            stored += 1
        return stored

    @staticmethod
    def _insert(session: Session, tx: Transaction, record_id: int) -> TransactionRecord:
        record = TransactionRecord(
            id=record_id,
            date=tx.date,
            ticker=tx.ticker.upper(),
            company=tx.company,
            asset_type=tx.asset_type,
            sector=tx.sector,
            qty=tx.qty,
            price=tx.price,
            broker=tx.broker,
            type=tx.type,
        )
        TransactionStore._fill_from_reference(session, record)

        session.add(record)
        session.commit()
        session.refresh(record)
        logger.info("Added transaction %s: %s %s %s @ %s",
                    record.id, record.type, record.qty, record.ticker, record.price)
        return record

    @staticmethod
    def _next_id(session: Session) -> int:
        now_ms = int(time.time() * 1000)
        last_id = session.exec(select(func.max(TransactionRecord.id))).one()
        # rows may come back as a scalar or a 1-tuple depending on stack
        if isinstance(last_id, tuple):
            last_id = last_id[0]
        return max(now_ms, (last_id or 0) + 1)

    @staticmethod
    def _fill_from_reference(session: Session, record: TransactionRecord) -> None:
        quote = session.get(TickerQuote, record.ticker) if record.ticker else None
        if quote is None:
            return
        record.company = record.company or quote.company_name
        record.asset_type = record.asset_type or quote.asset_type
        record.sector = record.sector or quote.sector


class TickerStore:
    """Ticker reference data; doubles as the price feed."""

    @staticmethod
    def list_all(session: Session) -> List[TickerQuote]:
        stmt = select(TickerQuote).order_by(TickerQuote.ticker)
        return list(session.exec(stmt).all())

    @staticmethod
    def upsert(session: Session, data: Mapping[str, Any]) -> Optional[TickerQuote]:
        """
        Insert or replace a ticker row keyed by its (upper-cased) symbol.

        Returns:
            Stored TickerQuote, or None when the row has no symbol
        """
        parsed = SheetParser.parse_tickers([data])
        if not parsed:
            return None
        quote = TickerStore._upsert_parsed(session, parsed[0])
        session.commit()
        session.refresh(quote)
        return quote

    @staticmethod
    def import_rows(session: Session, values: List[List[Any]]) -> int:
        """Load a full tickers sheet export (header row first). Returns rows stored."""
        parsed = SheetParser.parse_tickers(SheetParser.rows_to_records(values))
        for item in parsed:
            TickerStore._upsert_parsed(session, item)
        if parsed:
            session.commit()
        return len(parsed)

    @staticmethod
    def price_map(session: Session) -> Dict[str, float]:
        """ticker -> current price."""
        return {q.ticker: to_float(q.current_value) for q in TickerStore.list_all(session)}

    @staticmethod
    def _upsert_parsed(session: Session, parsed: ParsedTicker) -> TickerQuote:
        symbol = parsed.ticker.upper()
        quote = session.get(TickerQuote, symbol)
        if quote is None:
            quote = TickerQuote(ticker=symbol)
        quote.current_value = parsed.current_value
        quote.company_name = parsed.company_name
        quote.asset_type = parsed.asset_type
        quote.sector = parsed.sector
        quote.updated_at = utcnow()
        session.add(quote)
        session.flush()
        return quote
