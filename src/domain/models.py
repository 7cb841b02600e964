from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union

ZERO = Decimal("0")


class TransactionKind(str, Enum):
    EARNING = "EARNING"
    EXPENSE = "EXPENSE"


class Platform(str, Enum):
    UBER = "Uber"
    NINETY_NINE = "99"
    OTHER = "Outros"


class ExpenseCategory(str, Enum):
    FUEL = "Combustível"
    FOOD = "Alimentação"
    MAINTENANCE = "Manutenção"
    WASH = "Lavação"
    PLATFORM_FEES = "Taxas App"
    OTHER = "Outros"


# Platforms the earnings edit screen always writes, one record each.
EDITABLE_PLATFORMS: tuple[Platform, ...] = (Platform.UBER, Platform.NINETY_NINE)


class Period(str, Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Transaction:
    id: str
    kind: TransactionKind
    amount: Decimal
    occurred_at: datetime
    platform: Platform | None = None
    category: ExpenseCategory | None = None
    liters: Decimal | None = None
    description: str | None = None

    @property
    def day(self) -> date:
        return self.occurred_at.date()

    @property
    def is_earning(self) -> bool:
        return self.kind is TransactionKind.EARNING

    @property
    def is_expense(self) -> bool:
        return self.kind is TransactionKind.EXPENSE


@dataclass(frozen=True)
class EarningsGroup:
    """Same-day earnings across platforms, edited and deleted as one unit."""

    day: date
    members: tuple[Transaction, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum((member.amount for member in self.members), ZERO)

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(member.id for member in self.members)

    def by_platform(self) -> dict[Platform, Transaction]:
        # First record wins if a legacy store holds two for one platform.
        members: dict[Platform, Transaction] = {}
        for member in self.members:
            if member.platform is not None and member.platform not in members:
                members[member.platform] = member
        return members

    def member(self, platform: Platform) -> Transaction | None:
        return self.by_platform().get(platform)


DisplayItem = Union[EarningsGroup, Transaction]


@dataclass(frozen=True)
class SummaryStats:
    gross_earnings: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    per_platform_earnings: dict[Platform, Decimal] = field(
        default_factory=lambda: {platform: ZERO for platform in Platform}
    )
    daily_average_profit: Decimal = ZERO
    distinct_days: int = 0


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive day interval: both start and end days are part of the window."""

    start: date
    end: date
    period: Period = Period.CUSTOM

    def contains(self, moment: datetime | date) -> bool:
        day = moment.date() if isinstance(moment, datetime) else moment
        return self.start <= day <= self.end

    @property
    def label(self) -> str:
        if self.period is Period.DAY:
            return "today"
        if self.period is Period.MONTH:
            return "current month"
        if self.period is Period.YEAR:
            return "current year"
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


@dataclass(frozen=True)
class UpsertOp:
    transaction: Transaction

    @property
    def id(self) -> str:
        return self.transaction.id


@dataclass(frozen=True)
class DeleteOp:
    ids: tuple[str, ...]


LedgerOp = Union[UpsertOp, DeleteOp]
