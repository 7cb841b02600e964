from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from application.aggregation import summarize
from application.grouping import earnings_group_for_day, group
from application.mutation_planner import (
    plan_earnings_update,
    plan_expense_deletion,
    plan_expense_update,
    plan_group_deletion,
    plan_new_earnings,
    plan_new_expense,
)
from application.period_filter import build_window, filter_transactions
from application.validator import LedgerValidationError, ValidationIssue, issues_from_pydantic, utc_now
from domain.models import DisplayItem, EarningsGroup, LedgerOp, PeriodWindow, SummaryStats, Transaction
from domain.schemas import EarningsEdit, EarningsEntry, ExpenseEdit, ReportQuery, TransactionCandidate
from infrastructure.ledger_providers.provider import TransactionStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordNotFoundError(KeyError):
    pass


@dataclass(frozen=True)
class LedgerResult:
    ok: bool
    ops: tuple[LedgerOp, ...] = ()
    errors: list[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class PeriodReport:
    window: PeriodWindow
    stats: SummaryStats
    transaction_count: int


def _parse(model_cls: type[ModelT], payload: ModelT | Mapping[str, Any]) -> ModelT:
    if isinstance(payload, model_cls):
        return payload
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        raise LedgerValidationError(issues_from_pydantic(exc)) from exc


class LedgerEngine:
    """
    Runs ledger operations against a store.

    Each call fetches a fresh snapshot, hands it to the pure core and, for
    mutations, applies the planned ops. Invalid input comes back as a failed
    LedgerResult; store failures propagate as StoreError.
    """

    def __init__(self, store: TransactionStore, clock: Callable[[], datetime] = utc_now):
        self._store = store
        self._clock = clock

    # ---- reads ----
    def snapshot(self) -> list[Transaction]:
        t = time.perf_counter()
        transactions = self._store.fetch_all()
        logger.info("Engine snapshot store=%s count=%d in %.3fs", self._store.name, len(transactions), time.perf_counter() - t)
        return transactions

    def report(self, query: ReportQuery | Mapping[str, Any] | None = None, now: datetime | date | None = None) -> PeriodReport:
        window = self.window_for(query, now)
        selected = filter_transactions(self.snapshot(), window)
        stats = summarize(selected)
        logger.info("Engine report window=%s..%s count=%d", window.start, window.end, len(selected))
        return PeriodReport(window=window, stats=stats, transaction_count=len(selected))

    def window_for(self, query: ReportQuery | Mapping[str, Any] | None = None, now: datetime | date | None = None) -> PeriodWindow:
        query = _parse(ReportQuery, query or {})
        try:
            return build_window(query, now or self._clock())
        except ValueError as exc:
            raise LedgerValidationError([ValidationIssue(code="INVALID_WINDOW", message=str(exc), path="start")]) from exc

    def summary(self, window: PeriodWindow | None = None) -> SummaryStats:
        transactions = self.snapshot()
        if window is not None:
            transactions = filter_transactions(transactions, window)
        return summarize(transactions)

    def history(self, window: PeriodWindow | None = None) -> list[DisplayItem]:
        transactions = self.snapshot()
        if window is not None:
            transactions = filter_transactions(transactions, window)
        return group(transactions)

    def earnings_group(self, day: date) -> EarningsGroup:
        found = earnings_group_for_day(self.snapshot(), day)
        if not found.members:
            raise RecordNotFoundError(f"No earnings recorded on {day.isoformat()}")
        return found

    def get_transaction(self, txn_id: str) -> Transaction:
        for txn in self.snapshot():
            if txn.id == txn_id:
                return txn
        raise RecordNotFoundError(f"Transaction {txn_id} not found")

    # ---- mutations ----
    def record_earnings(self, entry: EarningsEntry | Mapping[str, Any]) -> LedgerResult:
        def plan() -> list[LedgerOp]:
            parsed = _parse(EarningsEntry, entry)
            return list(plan_new_earnings(parsed.amounts, parsed.on_date, snapshot=self.snapshot(), now=self._clock()))

        return self._commit("record_earnings", plan)

    def record_expense(self, candidate: TransactionCandidate | Mapping[str, Any]) -> LedgerResult:
        return self._commit("record_expense", lambda: [plan_new_expense(candidate, now=self._clock())])

    def edit_earnings(self, day: date, edit: EarningsEdit | Mapping[str, Any]) -> LedgerResult:
        snapshot = self.snapshot()
        existing = earnings_group_for_day(snapshot, day)
        if not existing.members:
            raise RecordNotFoundError(f"No earnings recorded on {day.isoformat()}")

        def plan() -> list[LedgerOp]:
            parsed = _parse(EarningsEdit, edit)
            return list(plan_earnings_update(existing, parsed.amounts, parsed.on_date, snapshot=snapshot))

        return self._commit("edit_earnings", plan)

    def edit_expense(self, txn_id: str, edits: ExpenseEdit | Mapping[str, Any]) -> LedgerResult:
        original = self.get_transaction(txn_id)
        return self._commit("edit_expense", lambda: [plan_expense_update(original, edits)])

    def delete_earnings(self, day: date) -> LedgerResult:
        existing = self.earnings_group(day)
        return self._commit("delete_earnings", lambda: [plan_group_deletion(existing)])

    def delete_expense(self, txn_id: str) -> LedgerResult:
        original = self.get_transaction(txn_id)
        if not original.is_expense:
            return LedgerResult(ok=False, errors=[
                ValidationIssue(code="NOT_AN_EXPENSE", message=f"{txn_id} is not an expense", path="id"),
            ])
        return self._commit("delete_expense", lambda: [plan_expense_deletion(original)])

    def _commit(self, action: str, plan: Callable[[], list[LedgerOp]]) -> LedgerResult:
        t = time.perf_counter()
        try:
            ops = plan()
        except LedgerValidationError as exc:
            logger.info("Engine %s rejected issues=%s", action, ",".join(exc.codes))
            return LedgerResult(ok=False, errors=exc.issues)

        if ops:
            self._store.apply(ops)
        logger.info("Engine %s applied ops=%d in %.3fs", action, len(ops), time.perf_counter() - t)
        return LedgerResult(ok=True, ops=tuple(ops))
