# portfolio_tracker/domain/models.py
"""Domain value objects."""

from typing import Any, Deque, Dict, Mapping, Optional
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
import math

import pytz

BUY = "BUY"
SELL = "SELL"

# Date formats seen in sheet exports, tried after ISO-8601
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y",
    "%d/%m/%Y, %H:%M:%S",
]


class NegativePositionError(ValueError):
    """A SELL could not be fully matched against open lots."""

    def __init__(self, ticker: str, transaction_id: Any, unmatched_qty: float):
        self.ticker = ticker
        self.transaction_id = transaction_id
        self.unmatched_qty = unmatched_qty
        super().__init__(
            f"SELL {transaction_id} of {ticker} exceeds open lots by {unmatched_qty}"
        )


def to_float(value: Any) -> float:
    """Coerce a sheet cell to float; missing or unparseable values become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        result = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(result):
        return 0.0
    return result


def normalize_type(value: Any) -> str:
    """Map a transaction type cell to BUY/SELL. Anything that isn't SELL was a buy."""
    return SELL if str(value or "").strip().upper() == SELL else BUY


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date cell to an aware UTC datetime.

    Accepts datetime/date objects and ISO-8601 strings (with or without a
    trailing "Z"). Naive values are taken to be UTC. Returns None when the
    value is empty or cannot be parsed.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        dt = None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in DATE_FORMATS:
                try:
                    dt = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if dt is None:
            return None

    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def _normalize_key(key: str) -> str:
    return str(key).replace(" ", "").replace("_", "").lower()


@dataclass(frozen=True)
class Transaction:
    """A recorded trade. Sign of qty is implied by type."""
    id: Any
    date: Optional[datetime]
    ticker: str
    qty: float
    price: float
    type: str = BUY
    broker: str = ""
    sector: str = ""
    asset_type: str = ""
    company: str = ""

    @property
    def is_sell(self) -> bool:
        return self.type == SELL

    @classmethod
    def from_record(cls, record: Any) -> "Transaction":
        """
        Build a Transaction from a header-keyed mapping or a row object.

        Mapping keys are matched ignoring case, spaces and underscores, so
        "Asset Type", "assetType" and "asset_type" all land on asset_type.
        """
        if isinstance(record, Transaction):
            return record

        if isinstance(record, Mapping):
            data = {_normalize_key(k): v for k, v in record.items()}
        else:
            data = {
                _normalize_key(name): getattr(record, name, None)
                for name in (
                    "id", "date", "ticker", "qty", "price", "type",
                    "broker", "sector", "asset_type", "company",
                )
            }

        return cls(
            id=data.get("id"),
            date=parse_date(data.get("date")),
            ticker=str(data.get("ticker") or "").strip(),
            qty=to_float(data.get("qty")),
            price=to_float(data.get("price")),
            type=normalize_type(data.get("type")),
            broker=str(data.get("broker") or "").strip(),
            sector=str(data.get("sector") or "").strip(),
            asset_type=str(data.get("assettype") or "").strip(),
            company=str(data.get("company") or "").strip(),
        )


@dataclass
class OpenLot:
    """Represents an open lot (for FIFO matching)."""
    qty: float
    price: float
    transaction_id: Any = None


@dataclass
class TickerState:
    """Tracks lots and running totals for one ticker during a replay."""
    open_lots: Deque[OpenLot] = field(default_factory=deque)
    total_investment: float = 0.0
    realized_profit: float = 0.0
    unmatched_sell_qty: float = 0.0

    @property
    def remaining_qty(self) -> float:
        return sum(lot.qty for lot in self.open_lots)

    @property
    def current_investment(self) -> float:
        return sum(lot.qty * lot.price for lot in self.open_lots)

    def unrealized_profit(self, current_price: float) -> float:
        return sum(lot.qty * (current_price - lot.price) for lot in self.open_lots)


@dataclass
class HoldingSummary:
    """Per-ticker cost-basis figures."""
    ticker: str
    quantity: float = 0.0
    total_investment: float = 0.0
    current_investment: float = 0.0
    current_price: float = 0.0
    market_value: float = 0.0
    realized_profit: float = 0.0
    unrealized_profit: float = 0.0
    total_profit: float = 0.0
    unmatched_sell_qty: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PortfolioSnapshot:
    """Aggregate portfolio figures for one engine run."""
    total_investment: float = 0.0
    current_investment: float = 0.0
    current_value: float = 0.0
    realized_profit: float = 0.0
    unrealized_profit: float = 0.0
    total_profit: float = 0.0
    profit_percentage: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class CostBasisResult:
    """Engine output: portfolio snapshot plus per-ticker breakdown."""
    snapshot: PortfolioSnapshot
    holdings: Dict[str, HoldingSummary] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict(),
            "holdings": [h.to_dict() for h in self.holdings.values()],
        }
