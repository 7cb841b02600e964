from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from domain.models import ZERO, Platform, SummaryStats, Transaction


def summarize(transactions: Iterable[Transaction]) -> SummaryStats:
    """
    Reduce a snapshot into gross/expense/profit totals.

    Decimal sums are exact, so the result does not depend on input order.
    Every platform is reported, zero when it has no earnings. The daily
    average divides net profit by the number of distinct calendar days that
    hold any transaction; an empty snapshot yields all zeros.
    """
    gross = ZERO
    expenses = ZERO
    per_platform: dict[Platform, Decimal] = {platform: ZERO for platform in Platform}
    days: set[date] = set()

    for txn in transactions:
        days.add(txn.day)
        if txn.is_earning:
            gross += txn.amount
            if txn.platform is not None:
                per_platform[txn.platform] += txn.amount
        else:
            expenses += txn.amount

    net = gross - expenses
    daily_average = net / max(len(days), 1) if days else ZERO
    return SummaryStats(
        gross_earnings=gross,
        total_expenses=expenses,
        net_profit=net,
        per_platform_earnings=per_platform,
        daily_average_profit=daily_average,
        distinct_days=len(days),
    )


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def summary_to_dict(stats: SummaryStats) -> dict[str, object]:
    return {
        "gross_earnings": _money(stats.gross_earnings),
        "total_expenses": _money(stats.total_expenses),
        "net_profit": _money(stats.net_profit),
        "per_platform_earnings": {
            platform.name.lower(): _money(amount) for platform, amount in stats.per_platform_earnings.items()
        },
        "daily_average_profit": _money(stats.daily_average_profit),
        "distinct_days": stats.distinct_days,
    }
