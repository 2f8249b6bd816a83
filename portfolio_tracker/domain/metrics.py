# portfolio_tracker/domain/metrics.py
"""Reporting aggregations over a transaction history."""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union
import pytz
import pandas as pd

from portfolio_tracker.config import REPORT_TIMEZONE
from portfolio_tracker.domain.cost_basis import CostBasisEngine
from portfolio_tracker.domain.models import Transaction, to_float

UNKNOWN = "Unknown"

GroupKey = Union[str, Callable[[Transaction], Any]]


class MetricsCalculator:
    """Build dashboard tables from transactions and live prices."""

    @staticmethod
    def holdings_by_ticker(
        transactions: Iterable[Any],
        ticker_prices: Optional[Mapping[str, Any]] = None,
    ) -> pd.DataFrame:
        """
        Per-ticker investment and profit using FIFO cost basis.

        Returns DataFrame with columns: ticker, quantity, investment,
        current_investment, current_price, current_value, realized_profit,
        unrealized_profit, profit
        """
        columns = [
            "ticker", "quantity", "investment", "current_investment", "current_price",
            "current_value", "realized_profit", "unrealized_profit", "profit",
        ]
        result = CostBasisEngine.compute(transactions, ticker_prices)
        if not result.holdings:
            return pd.DataFrame(columns=columns)

        rows = [
            {
                "ticker": h.ticker,
                "quantity": h.quantity,
                "investment": h.total_investment,
                "current_investment": h.current_investment,
                "current_price": h.current_price,
                "current_value": h.market_value,
                "realized_profit": h.realized_profit,
                "unrealized_profit": h.unrealized_profit,
                "profit": h.total_profit,
            }
            for h in result.holdings.values()
        ]
        return pd.DataFrame(rows, columns=columns).sort_values("ticker", ignore_index=True)

    @staticmethod
    def aggregate_by(
        transactions: Iterable[Any],
        ticker_prices: Optional[Mapping[str, Any]] = None,
        key: GroupKey = "sector",
    ) -> pd.DataFrame:
        """
        Group transactions by a field and total their qty, investment and value.

        key is a Transaction attribute name ("sector", "broker", "asset_type")
        or a callable taking a Transaction. Blank keys are grouped as
        "Unknown". Quantities are summed as recorded, without netting sells.

        Returns DataFrame with columns: <key name>, qty, investment,
        current_value, profit
        """
        name = key if isinstance(key, str) else "group"
        selector = key if callable(key) else (lambda t: getattr(t, key, None))
        prices = {str(k).strip(): to_float(v) for k, v in (ticker_prices or {}).items()}

        rows = []
        for record in transactions:
            tx = Transaction.from_record(record)
            group = selector(tx)
            group = str(group).strip() if group is not None else ""
            rows.append(
                {
                    name: group or UNKNOWN,
                    "qty": tx.qty,
                    "investment": tx.qty * tx.price,
                    "current_value": tx.qty * prices.get(tx.ticker, 0.0),
                }
            )

        if not rows:
            return pd.DataFrame(columns=[name, "qty", "investment", "current_value", "profit"])

        df = pd.DataFrame(rows)
        out = df.groupby(name, as_index=False, sort=False).agg(
            qty=("qty", "sum"),
            investment=("investment", "sum"),
            current_value=("current_value", "sum"),
        )
        out["profit"] = out["current_value"] - out["investment"]
        return out

    @staticmethod
    def aggregate_by_sector(transactions, ticker_prices=None) -> pd.DataFrame:
        return MetricsCalculator.aggregate_by(transactions, ticker_prices, "sector")

    @staticmethod
    def aggregate_by_broker(transactions, ticker_prices=None) -> pd.DataFrame:
        return MetricsCalculator.aggregate_by(transactions, ticker_prices, "broker")

    @staticmethod
    def aggregate_by_asset_type(transactions, ticker_prices=None) -> pd.DataFrame:
        return MetricsCalculator.aggregate_by(transactions, ticker_prices, "asset_type")

    @staticmethod
    def value_over_time(
        transactions: Iterable[Any],
        report_timezone: str = REPORT_TIMEZONE,
    ) -> pd.DataFrame:
        """
        Running invested amount (qty x price) by local calendar day.

        Returns DataFrame with columns: date, value
        """
        tz = pytz.timezone(report_timezone)
        ordered = CostBasisEngine.sort_transactions(
            Transaction.from_record(t) for t in transactions
        )

        by_day: Dict[str, float] = {}
        running = 0.0
        for tx in ordered:
            if tx.date is None:
                continue
            running += tx.qty * tx.price
            by_day[tx.date.astimezone(tz).strftime("%Y-%m-%d")] = running

        if not by_day:
            return pd.DataFrame(columns=["date", "value"])

        rows: List[Dict[str, Any]] = [
            {"date": day, "value": value} for day, value in by_day.items()
        ]
        return pd.DataFrame(rows)

    @staticmethod
    def quick_stats(
        transactions: Iterable[Any],
        ticker_prices: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Headline counts and figures for the dashboard sidebar."""
        txs = [Transaction.from_record(t) for t in transactions]
        snapshot = CostBasisEngine.compute(txs, ticker_prices).snapshot
        return {
            "total_transactions": len(txs),
            "total_tickers": len({t.ticker for t in txs}),
            "avg_investment_per_transaction": snapshot.total_investment / max(1, len(txs)),
            "total_investment": snapshot.total_investment,
            "current_value": snapshot.current_value,
            "total_profit": snapshot.total_profit,
            "profit_percentage": snapshot.profit_percentage,
        }
