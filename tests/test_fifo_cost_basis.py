from __future__ import annotations

import copy
import itertools
from datetime import datetime

import pytest
import pytz

from portfolio_tracker.domain.cost_basis import CostBasisEngine
from portfolio_tracker.domain.models import NegativePositionError, Transaction


def test_fifo_realized_pnl_correctness(fifo_rows):
    # Buy 10 @ 100, Buy 10 @ 120, Sell 15 @ 150
    # FIFO realized = 10*(150-100) + 5*(150-120) = 500 + 150 = 650
    # Remaining lot: 5 @ 120 -> current investment 600
    result = CostBasisEngine.compute(fifo_rows, {"X": 130})

    snap = result.snapshot
    assert snap.realized_profit == pytest.approx(650.0)
    assert snap.current_investment == pytest.approx(600.0)
    assert snap.total_investment == pytest.approx(2200.0)  # gross, not reduced by sells
    assert snap.unrealized_profit == pytest.approx(5 * (130 - 120))
    assert snap.total_profit == pytest.approx(700.0)
    assert snap.profit_percentage == pytest.approx(700.0 / 2200.0 * 100)
    # coarse value: every row at live price, sells not netted
    assert snap.current_value == pytest.approx((15 + 10 + 10) * 130)

    holding = result.holdings["X"]
    assert holding.quantity == pytest.approx(5.0)
    assert holding.market_value == pytest.approx(650.0)
    assert holding.unmatched_sell_qty == 0.0


def test_oversell_excess_is_discarded():
    rows = [
        {"id": 1, "date": "2024-01-01", "ticker": "X", "qty": 5, "price": 100, "type": "BUY"},
        {"id": 2, "date": "2024-01-02", "ticker": "X", "qty": 10, "price": 110, "type": "SELL"},
    ]
    result = CostBasisEngine.compute(rows, {"X": 120})

    assert result.snapshot.realized_profit == pytest.approx(50.0)
    assert result.snapshot.current_investment == 0.0
    assert result.snapshot.unrealized_profit == 0.0
    assert result.holdings["X"].quantity == 0.0
    assert result.holdings["X"].unmatched_sell_qty == pytest.approx(5.0)


def test_strict_mode_raises_on_oversell():
    rows = [
        {"id": 1, "date": "2024-01-01", "ticker": "X", "qty": 5, "price": 100, "type": "BUY"},
        {"id": 2, "date": "2024-01-02", "ticker": "X", "qty": 10, "price": 110, "type": "SELL"},
    ]
    with pytest.raises(NegativePositionError) as excinfo:
        CostBasisEngine.compute(rows, {"X": 120}, strict=True)

    assert excinfo.value.ticker == "X"
    assert excinfo.value.transaction_id == 2
    assert excinfo.value.unmatched_qty == pytest.approx(5.0)


def test_empty_history_is_all_zero():
    result = CostBasisEngine.compute([], {})
    assert result.holdings == {}
    assert result.snapshot.to_dict() == {
        "total_investment": 0.0,
        "current_investment": 0.0,
        "current_value": 0.0,
        "realized_profit": 0.0,
        "unrealized_profit": 0.0,
        "total_profit": 0.0,
        "profit_percentage": 0.0,
    }


def test_missing_price_values_lots_at_zero():
    rows = [{"id": 1, "date": "2024-01-01", "ticker": "NOPRICE", "qty": 10, "price": 100, "type": "BUY"}]
    result = CostBasisEngine.compute(rows, {"OTHER": 5})

    assert result.snapshot.unrealized_profit == pytest.approx(-1000.0)
    assert result.holdings["NOPRICE"].current_price == 0.0
    # coarse current value falls back to the trade price when no live price exists
    assert result.snapshot.current_value == pytest.approx(1000.0)


def test_live_price_of_zero_is_used_for_current_value():
    rows = [{"id": 1, "date": "2024-01-01", "ticker": "X", "qty": 10, "price": 100}]
    assert CostBasisEngine.current_value(rows, {"X": 0}) == 0.0


def test_null_live_price_falls_back_to_trade_price():
    rows = [{"id": 1, "date": "2024-01-01", "ticker": "X", "qty": 10, "price": 100}]
    assert CostBasisEngine.current_value(rows, {"X": None}) == pytest.approx(1000.0)
    assert CostBasisEngine.current_value(rows, {"X": "  "}) == pytest.approx(1000.0)
    assert CostBasisEngine.compute(rows, {"X": None}).snapshot.current_value == pytest.approx(1000.0)


def test_fractional_units_sold_out_leave_no_residue(caplog):
    # 0.3 - 0.1 - 0.2 is not exactly zero in floating point
    rows = [
        {"id": 1, "date": "2024-01-01", "ticker": "MF", "qty": 0.3, "price": 100, "type": "BUY"},
        {"id": 2, "date": "2024-01-02", "ticker": "MF", "qty": 0.1, "price": 110, "type": "SELL"},
        {"id": 3, "date": "2024-01-03", "ticker": "MF", "qty": 0.2, "price": 120, "type": "SELL"},
    ]

    holding = CostBasisEngine.compute(rows, {"MF": 130}, strict=True).holdings["MF"]
    assert holding.quantity == 0.0
    assert holding.unmatched_sell_qty == 0.0
    assert holding.realized_profit == pytest.approx(0.1 * 10 + 0.2 * 20)

    with caplog.at_level("WARNING", logger="portfolio_tracker.domain.cost_basis"):
        CostBasisEngine.compute(rows, {"MF": 130})
    assert "exceeds open lots" not in caplog.text


def test_no_sells_conserves_investment():
    rows = [
        {"id": 1, "date": "2024-01-01", "ticker": "A", "qty": 3, "price": 10, "type": "BUY"},
        {"id": 2, "date": "2024-01-05", "ticker": "A", "qty": 2, "price": 12.5, "type": "BUY"},
    ]
    holding = CostBasisEngine.compute(rows, {"A": 11}).holdings["A"]

    assert holding.current_investment == pytest.approx(holding.total_investment)
    assert holding.realized_profit == 0.0


def test_input_order_does_not_matter(fifo_rows):
    expected = CostBasisEngine.compute(fifo_rows, {"X": 130}).snapshot
    for perm in itertools.permutations(fifo_rows):
        assert CostBasisEngine.compute(list(perm), {"X": 130}).snapshot == expected


def test_idempotent_and_inputs_untouched(fifo_rows):
    original = copy.deepcopy(fifo_rows)
    first = CostBasisEngine.compute(fifo_rows, {"X": 130})
    second = CostBasisEngine.compute(fifo_rows, {"X": 130})

    assert first.snapshot == second.snapshot
    assert fifo_rows == original


def test_same_date_ties_keep_input_order():
    buy = {"id": 1, "date": "2024-01-01", "ticker": "X", "qty": 10, "price": 100, "type": "BUY"}
    sell = {"id": 2, "date": "2024-01-01", "ticker": "X", "qty": 10, "price": 110, "type": "SELL"}

    buy_first = CostBasisEngine.compute([buy, sell], {"X": 100})
    assert buy_first.snapshot.realized_profit == pytest.approx(100.0)
    assert buy_first.holdings["X"].quantity == 0.0

    # SELL replayed before any lot exists: nothing to match
    sell_first = CostBasisEngine.compute([sell, buy], {"X": 100})
    assert sell_first.snapshot.realized_profit == 0.0
    assert sell_first.holdings["X"].quantity == pytest.approx(10.0)
    assert sell_first.holdings["X"].unmatched_sell_qty == pytest.approx(10.0)


def test_unparseable_numbers_are_zero():
    rows = [
        {"id": 1, "date": "2024-01-01", "ticker": "X", "qty": "ten", "price": 100, "type": "BUY"},
        {"id": 2, "date": "2024-01-02", "ticker": "X", "qty": "4", "price": None, "type": "BUY"},
    ]
    result = CostBasisEngine.compute(rows, {"X": "12"})

    assert result.snapshot.total_investment == 0.0
    assert result.holdings["X"].quantity == pytest.approx(4.0)
    assert result.snapshot.unrealized_profit == pytest.approx(48.0)


def test_tickers_are_matched_independently():
    txs = [
        Transaction(id=1, date=datetime(2024, 1, 1, tzinfo=pytz.UTC), ticker="A", qty=10, price=10),
        Transaction(id=2, date=datetime(2024, 1, 2, tzinfo=pytz.UTC), ticker="B", qty=10, price=20),
        Transaction(id=3, date=datetime(2024, 1, 3, tzinfo=pytz.UTC), ticker="A", qty=5, price=12, type="SELL"),
    ]
    result = CostBasisEngine.compute(txs, {"A": 10, "B": 25})

    assert result.holdings["A"].realized_profit == pytest.approx(10.0)
    assert result.holdings["A"].quantity == pytest.approx(5.0)
    assert result.holdings["B"].realized_profit == 0.0
    assert result.holdings["B"].unrealized_profit == pytest.approx(50.0)
    assert result.snapshot.total_profit == pytest.approx(60.0)


def test_undated_transactions_replay_first():
    rows = [
        {"id": 2, "date": "2024-01-02", "ticker": "X", "qty": 5, "price": 15, "type": "SELL"},
        {"id": 1, "date": "", "ticker": "X", "qty": 5, "price": 10, "type": "BUY"},
    ]
    result = CostBasisEngine.compute(rows, {})
    assert result.snapshot.realized_profit == pytest.approx(25.0)


def test_missing_type_counts_as_buy():
    tx = Transaction.from_record({"id": 1, "date": "2024-01-01", "ticker": " X ", "qty": 1, "price": 2})
    assert tx.type == "BUY"
    assert tx.ticker == "X"
