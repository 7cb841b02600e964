from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from application.period_filter import build_window, filter_transactions
from application.validator import normalize_occurred_at
from domain.models import DisplayItem, EarningsGroup, LedgerOp, Period, PeriodWindow, Transaction, UpsertOp
from domain.schemas import ReportQuery, ToolRequest, coerce_moment
from infrastructure.get_transactions import get_transactions

logger = logging.getLogger(__name__)


def _money(value: Any) -> float:
    return round(float(value), 2)


def resolve_now(raw: Any = None, tz_name: str = "UTC") -> datetime:
    """An explicit ``raw`` date or timestamp, else the clock in ``tz_name``."""
    if raw:
        moment = coerce_moment(raw)
        if isinstance(moment, datetime):
            return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
        if isinstance(moment, date):
            return normalize_occurred_at(moment)
        raise ValueError(f"now must be an ISO date or timestamp, got {raw!r}")

    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to UTC", tz_name)
        tz = timezone.utc
    return datetime.now(tz)


def request_now(request: ToolRequest) -> datetime:
    """The caller's "now": an explicit ``now`` arg, else the clock in the context's timezone."""
    return resolve_now(request.args.get("now"), request.context.timezone)


def resolve_window(request: ToolRequest, default_period: Period | None = Period.MONTH) -> PeriodWindow | None:
    args = request.args
    start, end = args.get("start"), args.get("end")
    period = args.get("period")
    if period is None:
        if start or end:
            period = Period.CUSTOM
        elif default_period is None:
            return None
        else:
            period = default_period
    query = ReportQuery.model_validate({"period": period, "start": start, "end": end})
    return build_window(query, request_now(request))


def fetch_transactions(
    request: ToolRequest,
    default_period: Period | None = Period.MONTH,
) -> tuple[list[Transaction], PeriodWindow | None]:
    window = resolve_window(request, default_period=default_period)
    transactions = get_transactions.fetch_all()
    if window is not None:
        transactions = filter_transactions(transactions, window)
    return transactions, window


def window_to_dict(window: PeriodWindow | None) -> dict[str, Any] | None:
    if window is None:
        return None
    return {
        "period": window.period.value,
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "label": window.label,
    }


def serialize_transaction(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "type": txn.kind.value,
        "amount": _money(txn.amount),
        "date": txn.occurred_at.isoformat(),
        "day": txn.day.isoformat(),
        "platform": txn.platform.value if txn.platform else None,
        "category": txn.category.value if txn.category else None,
        "liters": float(txn.liters) if txn.liters is not None else None,
        "description": txn.description,
    }


def serialize_item(item: DisplayItem) -> dict[str, Any]:
    if isinstance(item, EarningsGroup):
        return {
            "item_type": "earnings_group",
            "day": item.day.isoformat(),
            "total": _money(item.total),
            "platforms": [member.platform.value for member in item.members if member.platform],
            "members": [serialize_transaction(member) for member in item.members],
        }
    return {"item_type": "expense", **serialize_transaction(item)}


def serialize_op(op: LedgerOp) -> dict[str, Any]:
    if isinstance(op, UpsertOp):
        return {"op": "upsert", "transaction": serialize_transaction(op.transaction)}
    return {"op": "delete", "ids": list(op.ids)}
