# portfolio_tracker/domain/snapshots.py
"""Portfolio value history."""

from typing import List, Optional
from datetime import datetime
import logging

import pytz
from sqlmodel import Session, select

from portfolio_tracker.config import REPORT_TIMEZONE
from portfolio_tracker.db.models import PortfolioHistory
from portfolio_tracker.domain.cost_basis import CostBasisEngine
from portfolio_tracker.domain.models import PortfolioSnapshot
from portfolio_tracker.io.store import TickerStore, TransactionStore

logger = logging.getLogger(__name__)


class SnapshotRecorder:
    """Appends portfolio snapshots to the history table."""

    @staticmethod
    def record(
        session: Session,
        snapshot: PortfolioSnapshot,
        report_timezone: str = REPORT_TIMEZONE,
        now: Optional[datetime] = None,
    ) -> PortfolioHistory:
        """
        Store current value and profit % of a snapshot.

        Args:
            session: SQLModel session
            snapshot: Engine output to record
            report_timezone: Timezone for the display date
            now: Aware recording time (defaults to current UTC time)
        """
        tz = pytz.timezone(report_timezone)
        now_utc = (now or datetime.now(pytz.UTC)).astimezone(pytz.UTC)

        row = PortfolioHistory(
            recorded_at=now_utc,
            recorded_local=now_utc.astimezone(tz).strftime("%d/%m/%Y, %H:%M:%S"),
            current_value=snapshot.current_value,
            profit_percentage=snapshot.profit_percentage,
        )
        session.add(row)
        session.commit()
        session.refresh(row)

        logger.info(
            "Portfolio updated: %s, Value: %s, Profit%%: %s",
            row.recorded_local, row.current_value, row.profit_percentage,
        )
        return row

    @staticmethod
    def history(session: Session) -> List[PortfolioHistory]:
        """All recorded snapshots, oldest first."""
        stmt = select(PortfolioHistory).order_by(PortfolioHistory.recorded_at, PortfolioHistory.id)
        return list(session.exec(stmt).all())

    @staticmethod
    def update_portfolio_value(
        session: Session,
        report_timezone: str = REPORT_TIMEZONE,
    ) -> PortfolioHistory:
        """Compute the portfolio from the stored ledger and live prices, then record it."""
        snapshot = CostBasisEngine.compute(
            TransactionStore.list_all(session),
            TickerStore.price_map(session),
        ).snapshot
        return SnapshotRecorder.record(session, snapshot, report_timezone)
