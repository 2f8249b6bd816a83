# portfolio_tracker/io/sheet_parser.py
"""
Spreadsheet-shaped input parsing.
Turns a header row plus value rows (or header-keyed dicts) into
transactions and ticker quotes.
"""

from typing import Any, Dict, Iterable, List, Mapping, Sequence
from dataclasses import dataclass
import logging

from portfolio_tracker.domain.models import Transaction, to_float

logger = logging.getLogger(__name__)


@dataclass
class ParsedTicker:
    """Represents a single row of the tickers sheet."""
    ticker: str
    current_value: float
    company_name: str = ""
    asset_type: str = ""
    sector: str = ""


class SheetParser:
    """Parse sheet exports of the transactions and tickers tabs."""

    # Tickers sheet headers, matched ignoring case/spaces/underscores
    TICKER_HEADERS = {
        "tickers": "ticker",
        "ticker": "ticker",
        "currentvalue": "current_value",
        "currentprice": "current_value",
        "companyname": "company_name",
        "company": "company_name",
        "assettype": "asset_type",
        "sector": "sector",
    }

    @staticmethod
    def rows_to_records(values: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
        """
        Zip a header row with the value rows below it.

        Args:
            values: Full data range; first row is headers

        Returns:
            List of header-keyed dicts (empty when there are no data rows)
        """
        if not values or len(values) <= 1:
            return []

        headers = [str(h).strip() for h in values[0]]
        records = []
        for row in values[1:]:
            if not any(str(cell).strip() for cell in row if cell is not None):
                continue  # blank row
            records.append(
                {header: (row[i] if i < len(row) else None) for i, header in enumerate(headers)}
            )
        return records

    @staticmethod
    def parse_transactions(records: Iterable[Any]) -> List[Transaction]:
        """Parse transaction rows; rows without a ticker are skipped."""
        transactions = []
        for record in records:
            tx = Transaction.from_record(record)
            if not tx.ticker:
                logger.debug("Skipped transaction row without ticker: %r", record)
                continue
            transactions.append(tx)
        return transactions

    @staticmethod
    def parse_tickers(records: Iterable[Mapping[str, Any]]) -> List[ParsedTicker]:
        """Parse ticker reference rows; rows without a symbol are skipped."""
        tickers = []
        for record in records:
            data: Dict[str, Any] = {}
            for key, value in record.items():
                field = SheetParser.TICKER_HEADERS.get(
                    str(key).replace(" ", "").replace("_", "").lower()
                )
                if field and field not in data:
                    data[field] = value

            symbol = str(data.get("ticker") or "").strip()
            if not symbol:
                continue

            tickers.append(
                ParsedTicker(
                    ticker=symbol,
                    current_value=to_float(data.get("current_value")),
                    company_name=str(data.get("company_name") or "").strip(),
                    asset_type=str(data.get("asset_type") or "").strip(),
                    sector=str(data.get("sector") or "").strip(),
                )
            )
        return tickers
