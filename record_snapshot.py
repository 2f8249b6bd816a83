"""Record the current portfolio value once (run from cron or any scheduler)."""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from portfolio_tracker.config import configure_logging
from portfolio_tracker.db.session import get_session, init_db
from portfolio_tracker.domain.snapshots import SnapshotRecorder

if __name__ == "__main__":
    configure_logging()
    init_db()
    with get_session() as session:
        SnapshotRecorder.update_portfolio_value(session)
