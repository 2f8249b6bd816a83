# portfolio_tracker/io/actions.py
"""
Request/response actions over the stores.
Every call answers with {"ok": True, "data": ...} or {"ok": False, "error": "..."}.
"""

from typing import Any, Callable, Dict, Mapping
import json
import logging

from sqlmodel import Session

from portfolio_tracker.domain.cost_basis import CostBasisEngine
from portfolio_tracker.domain.snapshots import SnapshotRecorder
from portfolio_tracker.io.store import TickerStore, TransactionStore

logger = logging.getLogger(__name__)


class ActionError(ValueError):
    """A request that cannot be served; reported back as an error envelope."""


def json_success(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data}


def json_error(message: Any) -> Dict[str, Any]:
    return {"ok": False, "error": str(message)}


def _require_data(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = payload.get("data")
    if data is None or data == "":
        raise ActionError("Missing data parameter")
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError:
            raise ActionError("Invalid JSON in data parameter")
    if not isinstance(data, dict):
        raise ActionError("data must be an object")
    return data


def _require_id(payload: Mapping[str, Any]) -> int:
    raw = payload.get("id")
    if raw is None or raw == "":
        raise ActionError("Missing id parameter")
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ActionError(f"Invalid id: {raw}")


def _get(session: Session, payload: Mapping[str, Any]) -> Any:
    return [r.to_dict() for r in TransactionStore.list_all(session)]


def _add(session: Session, payload: Mapping[str, Any]) -> Any:
    return TransactionStore.append(session, _require_data(payload)).to_dict()


def _update(session: Session, payload: Mapping[str, Any]) -> Any:
    transaction_id = _require_id(payload)
    record = TransactionStore.update_by_id(session, transaction_id, _require_data(payload))
    if record is None:
        raise ActionError(f"Transaction not found: {transaction_id}")
    return record.to_dict()


def _delete(session: Session, payload: Mapping[str, Any]) -> Any:
    transaction_id = _require_id(payload)
    if not TransactionStore.delete_by_id(session, transaction_id):
        raise ActionError(f"Transaction not found: {transaction_id}")
    return {"deleted": transaction_id}


def _get_tickers(session: Session, payload: Mapping[str, Any]) -> Any:
    return [q.to_dict() for q in TickerStore.list_all(session)]


def _get_portfolio(session: Session, payload: Mapping[str, Any]) -> Any:
    return [row.to_dict() for row in SnapshotRecorder.history(session)]


def _analytics(session: Session, payload: Mapping[str, Any]) -> Any:
    result = CostBasisEngine.compute(
        TransactionStore.list_all(session),
        TickerStore.price_map(session),
    )
    return result.to_dict()


ACTIONS: Dict[str, Callable[[Session, Mapping[str, Any]], Any]] = {
    "get": _get,
    "add": _add,
    "update": _update,
    "delete": _delete,
    "get_tickers": _get_tickers,
    "get_portfolio": _get_portfolio,
    "analytics": _analytics,
}


def handle_action(session: Session, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Dispatch one request.

    Args:
        session: SQLModel session
        payload: {"action": ..., "id": ..., "data": {...} or JSON string}

    Returns:
        Response envelope; this function does not raise.
    """
    if not payload:
        return json_error("No parameters provided")

    action = payload.get("action")
    if not action:
        return json_error("Missing action")

    handler = ACTIONS.get(str(action))
    if handler is None:
        return json_error(f"Invalid action: {action}")

    try:
        return json_success(handler(session, payload))
    except ActionError as e:
        return json_error(e)
    except Exception as e:
        logger.exception("Action %s failed", action)
        session.rollback()
        return json_error(str(e) or "Server error")
