from __future__ import annotations

from datetime import date
from typing import Iterable, Union

from domain.models import DisplayItem, EarningsGroup, Transaction


def group(transactions: Iterable[Transaction]) -> list[DisplayItem]:
    """
    Collapse earnings into one EarningsGroup per day; pass expenses through.

    A group takes the position where its day's first earning appeared, so the
    interleaving of groups and expenses follows the input order. A day with a
    single platform still yields a one-member group.
    """
    slots: list[Union[date, Transaction]] = []
    buckets: dict[date, list[Transaction]] = {}

    for txn in transactions:
        if not txn.is_earning:
            slots.append(txn)
            continue
        day = txn.day
        if day not in buckets:
            buckets[day] = []
            slots.append(day)
        buckets[day].append(txn)

    return [
        EarningsGroup(day=slot, members=tuple(buckets[slot])) if isinstance(slot, date) else slot
        for slot in slots
    ]


def earnings_group_for_day(transactions: Iterable[Transaction], day: date) -> EarningsGroup:
    """Sibling earnings of ``day``, possibly none, for opening an edit session."""
    return EarningsGroup(day=day, members=tuple(t for t in transactions if t.is_earning and t.day == day))
