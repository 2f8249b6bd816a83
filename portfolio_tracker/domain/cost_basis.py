# portfolio_tracker/domain/cost_basis.py
"""
Cost basis from a transaction history.
Implements FIFO lot matching per ticker, realized/unrealized profit and
portfolio-level aggregation.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional
from datetime import datetime
from collections import defaultdict
import logging

import pytz

from portfolio_tracker.domain.models import (
    CostBasisResult,
    HoldingSummary,
    NegativePositionError,
    OpenLot,
    PortfolioSnapshot,
    TickerState,
    Transaction,
    to_float,
)

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=pytz.UTC)

# Quantities closer to zero than this are float residue from lot subtraction
QTY_TOLERANCE = 1e-9


class CostBasisEngine:
    """Computes profit figures from transactions using FIFO matching."""

    @staticmethod
    def compute(
        transactions: Iterable[Any],
        ticker_prices: Optional[Mapping[str, Any]] = None,
        strict: bool = False,
    ) -> CostBasisResult:
        """
        Replay a transaction history and aggregate it.

        Args:
            transactions: Transaction objects, header-keyed dicts or row
                objects, in any order. Records are never mutated.
            ticker_prices: ticker -> current unit price. Missing tickers
                are valued at 0.
            strict: Raise NegativePositionError when a SELL exceeds the
                open lots instead of discarding the excess.

        Returns:
            CostBasisResult with the portfolio snapshot and a HoldingSummary
            per ticker.
        """
        prices = CostBasisEngine._normalize_prices(ticker_prices)
        ordered = CostBasisEngine.sort_transactions(
            Transaction.from_record(t) for t in transactions
        )

        states: Dict[str, TickerState] = defaultdict(TickerState)
        for tx in ordered:
            state = states[tx.ticker]
            if tx.is_sell:
                CostBasisEngine._match_sell(state, tx, strict)
            else:
                state.open_lots.append(
                    OpenLot(qty=tx.qty, price=tx.price, transaction_id=tx.id)
                )
                state.total_investment += tx.qty * tx.price

        holdings = {
            ticker: CostBasisEngine._summarize(ticker, state, prices.get(ticker, 0.0))
            for ticker, state in states.items()
        }

        total_investment = sum(h.total_investment for h in holdings.values())
        realized = sum(h.realized_profit for h in holdings.values())
        unrealized = sum(h.unrealized_profit for h in holdings.values())
        total_profit = realized + unrealized

        snapshot = PortfolioSnapshot(
            total_investment=total_investment,
            current_investment=sum(h.current_investment for h in holdings.values()),
            current_value=CostBasisEngine.current_value(ordered, prices),
            realized_profit=realized,
            unrealized_profit=unrealized,
            total_profit=total_profit,
            profit_percentage=(
                total_profit / total_investment * 100 if total_investment != 0 else 0.0
            ),
        )
        return CostBasisResult(snapshot=snapshot, holdings=holdings)

    @staticmethod
    def sort_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
        """Stable sort by date; undated transactions come first, ties keep input order."""
        return sorted(
            transactions,
            key=lambda t: (t.date is not None, t.date or _EARLIEST),
        )

    @staticmethod
    def current_value(
        transactions: Iterable[Any],
        ticker_prices: Optional[Mapping[str, Any]] = None,
    ) -> float:
        """
        Coarse portfolio value: qty x (live price, else trade price) summed
        over every transaction. BUY and SELL quantities are not netted.
        """
        prices = CostBasisEngine._normalize_prices(ticker_prices)
        total = 0.0
        for record in transactions:
            tx = Transaction.from_record(record)
            price = prices[tx.ticker] if tx.ticker in prices else tx.price
            total += tx.qty * price
        return total

    @staticmethod
    def _match_sell(state: TickerState, tx: Transaction, strict: bool) -> None:
        """Consume open lots front-to-back for a SELL."""
        remaining = tx.qty
        while remaining > QTY_TOLERANCE and state.open_lots:
            lot = state.open_lots[0]
            matched = min(remaining, lot.qty)

            state.realized_profit += (tx.price - lot.price) * matched

            lot.qty -= matched
            remaining -= matched

            if lot.qty <= QTY_TOLERANCE:
                state.open_lots.popleft()

        if remaining > QTY_TOLERANCE:
            if strict:
                raise NegativePositionError(tx.ticker, tx.id, remaining)
            # Excess beyond held lots is dropped; no short lot is opened
            logger.warning(
                "SELL %s of %s exceeds open lots by %s; excess discarded",
                tx.id, tx.ticker, remaining,
            )
            state.unmatched_sell_qty += remaining

    @staticmethod
    def _summarize(ticker: str, state: TickerState, current_price: float) -> HoldingSummary:
        quantity = state.remaining_qty
        unrealized = state.unrealized_profit(current_price)
        return HoldingSummary(
            ticker=ticker,
            quantity=quantity,
            total_investment=state.total_investment,
            current_investment=state.current_investment,
            current_price=current_price,
            market_value=quantity * current_price,
            realized_profit=state.realized_profit,
            unrealized_profit=unrealized,
            total_profit=state.realized_profit + unrealized,
            unmatched_sell_qty=state.unmatched_sell_qty,
        )

    @staticmethod
    def _normalize_prices(ticker_prices: Optional[Mapping[str, Any]]) -> Dict[str, float]:
        if not ticker_prices:
            return {}
        # A null or blank price counts as no live price at all
        return {
            str(k).strip(): to_float(v)
            for k, v in ticker_prices.items()
            if v is not None and str(v).strip() != ""
        }
