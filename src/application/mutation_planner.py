from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from application.grouping import earnings_group_for_day
from application.validator import (
    LedgerValidationError,
    ValidationIssue,
    ensure_valid,
    issues_from_pydantic,
    new_transaction_id,
    normalize_occurred_at,
)
from domain.models import (
    EDITABLE_PLATFORMS,
    ZERO,
    DeleteOp,
    EarningsGroup,
    Platform,
    Transaction,
    TransactionKind,
    UpsertOp,
)
from domain.schemas import ExpenseEdit, TransactionCandidate

IdFactory = Callable[[], str]


def _amount_issues(amounts: Mapping[Platform, Decimal]) -> list[ValidationIssue]:
    return [
        ValidationIssue(
            code="NEGATIVE_AMOUNT",
            message="amount must be >= 0",
            path=f"amounts.{platform.name.lower()}",
        )
        for platform, amount in amounts.items()
        if Decimal(amount) < 0
    ]


def plan_earnings_update(
    group: EarningsGroup,
    edited_amounts: Mapping[Platform, Decimal],
    edited_date: date | None = None,
    *,
    snapshot: Iterable[Transaction] | None = None,
    id_factory: IdFactory = new_transaction_id,
) -> list[UpsertOp]:
    """
    Turn an edit of a day's earnings into one upsert per platform.

    Uber and 99 always get exactly one op each: the existing member's id is
    reused, otherwise a new id is minted. A zero amount is still written so the
    platform keeps its slot for the day. Platforms left out of
    ``edited_amounts`` keep their current amount. Every other member is
    rewritten only when the day moves, so the whole group lands on the new
    date. With a ``snapshot``, moving onto a day that already has earnings for
    one of the written platforms is rejected.
    """
    target_day = edited_date or group.day
    issues = _amount_issues(edited_amounts)

    written = list(EDITABLE_PLATFORMS) + [p for p in Platform if p in edited_amounts and p not in EDITABLE_PLATFORMS]
    existing = group.by_platform()

    if snapshot is not None and target_day != group.day:
        own_ids = set(group.member_ids)
        moving = set(written) | {m.platform for m in group.members}
        taken = {
            t.platform
            for t in snapshot
            if t.is_earning and t.day == target_day and t.id not in own_ids
        }
        clashes = [p for p in Platform if p in taken and p in moving]
        if clashes:
            issues.append(ValidationIssue(
                code="DATE_CONFLICT",
                message=(
                    f"{target_day.isoformat()} already has earnings for "
                    + ", ".join(p.value for p in clashes)
                ),
                path="date",
            ))

    if issues:
        raise LedgerValidationError(issues)

    occurred_at = normalize_occurred_at(target_day)
    ops: list[UpsertOp] = []
    for platform in written:
        member = existing.get(platform)
        if platform in edited_amounts:
            amount = Decimal(edited_amounts[platform])
        else:
            amount = member.amount if member else ZERO
        if member is not None:
            txn = replace(member, amount=amount, occurred_at=occurred_at)
        else:
            txn = Transaction(
                id=id_factory(),
                kind=TransactionKind.EARNING,
                amount=amount,
                occurred_at=occurred_at,
                platform=platform,
            )
        ops.append(UpsertOp(transaction=txn))

    if target_day != group.day:
        planned = {op.id for op in ops}
        for member in group.members:
            if member.id not in planned:
                ops.append(UpsertOp(transaction=replace(member, occurred_at=occurred_at)))
    return ops


def plan_expense_update(original: Transaction, edits: ExpenseEdit | Mapping[str, Any]) -> UpsertOp:
    """Replace a single expense in place; only the fields present in ``edits`` change."""
    if not original.is_expense:
        raise LedgerValidationError([
            ValidationIssue(code="NOT_AN_EXPENSE", message=f"{original.id} is not an expense", path="id"),
        ])
    if not isinstance(edits, ExpenseEdit):
        try:
            edits = ExpenseEdit.model_validate(edits)
        except ValidationError as exc:
            raise LedgerValidationError(issues_from_pydantic(exc)) from exc

    changed = edits.model_fields_set
    payload = {
        "id": original.id,
        "kind": TransactionKind.EXPENSE,
        "amount": edits.amount if edits.amount is not None else original.amount,
        "occurred_at": edits.on_date if edits.on_date is not None else original.occurred_at,
        "category": edits.category if edits.category is not None else original.category,
        "liters": edits.liters if "liters" in changed else original.liters,
        "description": edits.description if "description" in changed else original.description,
    }
    return UpsertOp(transaction=ensure_valid(payload))


def plan_group_deletion(group: EarningsGroup) -> DeleteOp:
    """Every member goes; the store must apply the whole id set or none of it."""
    return DeleteOp(ids=group.member_ids)


def plan_expense_deletion(expense: Transaction) -> DeleteOp:
    return DeleteOp(ids=(expense.id,))


def plan_new_earnings(
    amounts: Mapping[Platform, Decimal],
    on_date: date | None = None,
    *,
    snapshot: Iterable[Transaction] = (),
    now: datetime | None = None,
    id_factory: IdFactory = new_transaction_id,
) -> list[UpsertOp]:
    """
    Record a day's earnings. Zero amounts are skipped; a platform that already
    has a record that day gets the new amount added to it instead of a second
    record.
    """
    issues = _amount_issues(amounts)
    if issues:
        raise LedgerValidationError(issues)

    occurred_at = normalize_occurred_at(on_date, now=now)
    existing = earnings_group_for_day(snapshot, occurred_at.date()).by_platform()
    ops: list[UpsertOp] = []
    for platform in Platform:
        amount = Decimal(amounts.get(platform, ZERO))
        if amount <= 0:
            continue
        member = existing.get(platform)
        if member is not None:
            txn = replace(member, amount=member.amount + amount)
        else:
            txn = Transaction(
                id=id_factory(),
                kind=TransactionKind.EARNING,
                amount=amount,
                occurred_at=occurred_at,
                platform=platform,
            )
        ops.append(UpsertOp(transaction=txn))
    return ops


def plan_new_expense(
    candidate: TransactionCandidate | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> UpsertOp:
    if not isinstance(candidate, TransactionCandidate):
        candidate = dict(candidate)
        if "kind" not in candidate and "type" not in candidate:
            candidate["kind"] = TransactionKind.EXPENSE
    txn = ensure_valid(candidate, now=now)
    if not txn.is_expense:
        raise LedgerValidationError([
            ValidationIssue(code="NOT_AN_EXPENSE", message="expected an expense", path="type"),
        ])
    if txn.amount <= 0:
        raise LedgerValidationError([
            ValidationIssue(code="NON_POSITIVE_AMOUNT", message="new expenses need an amount > 0", path="amount"),
        ])
    return UpsertOp(transaction=txn)
