from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timedelta
from typing import Iterable

from domain.models import Period, PeriodWindow, Transaction
from domain.schemas import ReportQuery

DEFAULT_CUSTOM_DAYS = 7


def _day_of(now: datetime | date) -> date:
    return now.date() if isinstance(now, datetime) else now


def window_for_period(period: Period, now: datetime | date) -> PeriodWindow:
    """Preset window around the caller's ``now``: its day, calendar month or calendar year."""
    today = _day_of(now)
    if period is Period.DAY:
        return PeriodWindow(start=today, end=today, period=period)
    if period is Period.MONTH:
        last = monthrange(today.year, today.month)[1]
        return PeriodWindow(start=today.replace(day=1), end=today.replace(day=last), period=period)
    if period is Period.YEAR:
        return PeriodWindow(start=date(today.year, 1, 1), end=date(today.year, 12, 31), period=period)
    return default_custom_window(now)


def custom_window(start: date, end: date) -> PeriodWindow:
    if start > end:
        raise ValueError(f"custom window start {start.isoformat()} is after end {end.isoformat()}")
    return PeriodWindow(start=start, end=end, period=Period.CUSTOM)


def default_custom_window(now: datetime | date) -> PeriodWindow:
    today = _day_of(now)
    return custom_window(today - timedelta(days=DEFAULT_CUSTOM_DAYS), today)


def build_window(query: ReportQuery, now: datetime | date) -> PeriodWindow:
    if query.period is not Period.CUSTOM:
        return window_for_period(query.period, now)
    start, end = query.start, query.end
    if start is None and end is None:
        return default_custom_window(now)
    # A single bound anchors the window; the other end is derived from it.
    if start is None:
        start = end - timedelta(days=DEFAULT_CUSTOM_DAYS)
    if end is None:
        end = max(start, _day_of(now))
    return custom_window(start, end)


def filter_transactions(transactions: Iterable[Transaction], window: PeriodWindow) -> list[Transaction]:
    """Transactions whose calendar day falls inside the window, boundary days included, in input order."""
    return [txn for txn in transactions if window.contains(txn.occurred_at)]
