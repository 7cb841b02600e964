from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from domain.models import Transaction, TransactionKind
from domain.schemas import TransactionCandidate

# Records are pinned to noon UTC so a date-only input never crosses midnight in any timezone.
CANONICAL_TIME = time(12, 0, tzinfo=timezone.utc)

_FIELD_CODES = {
    "amount": "INVALID_AMOUNT",
    "amounts": "INVALID_AMOUNT",
    "liters": "INVALID_LITERS",
    "platform": "INVALID_PLATFORM",
    "category": "INVALID_CATEGORY",
    "kind": "INVALID_KIND",
    "type": "INVALID_KIND",
    "occurred_at": "INVALID_DATE",
    "date": "INVALID_DATE",
}


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    path: str = ""


class LedgerValidationError(ValueError):
    """A rejected candidate, carrying one issue per offending field."""

    def __init__(self, issues: Iterable[ValidationIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(f"{i.path}: {i.message}" if i.path else i.message for i in self.issues))

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]

    def as_dicts(self) -> list[dict[str, str]]:
        return [asdict(issue) for issue in self.issues]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def normalize_occurred_at(value: date | datetime | None, *, now: datetime | None = None) -> datetime:
    """Return noon UTC of the value's calendar date (of ``now`` when the value is omitted)."""
    if value is None:
        value = now or utc_now()
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, CANONICAL_TIME)


def validate(
    candidate: TransactionCandidate | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> Transaction | LedgerValidationError:
    """
    Build a Transaction from raw input, or return why it was rejected.

    Never raises for bad input: shape errors from pydantic and business-rule
    violations both come back as a LedgerValidationError value so callers can
    show field-level feedback.
    """
    if not isinstance(candidate, TransactionCandidate):
        try:
            candidate = TransactionCandidate.model_validate(candidate)
        except ValidationError as exc:
            return LedgerValidationError(issues_from_pydantic(exc))

    issues = _rule_issues(candidate)
    if issues:
        return LedgerValidationError(issues)

    is_earning = candidate.kind is TransactionKind.EARNING
    return Transaction(
        id=candidate.id or new_transaction_id(),
        kind=candidate.kind,
        amount=candidate.amount,
        occurred_at=normalize_occurred_at(candidate.occurred_at, now=now),
        platform=candidate.platform if is_earning else None,
        category=None if is_earning else candidate.category,
        liters=None if is_earning else candidate.liters,
        description=candidate.description or None,
    )


def ensure_valid(candidate: TransactionCandidate | Mapping[str, Any], *, now: datetime | None = None) -> Transaction:
    result = validate(candidate, now=now)
    if isinstance(result, LedgerValidationError):
        raise result
    return result


def _rule_issues(candidate: TransactionCandidate) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if candidate.amount < 0:
        issues.append(ValidationIssue(code="NEGATIVE_AMOUNT", message="amount must be >= 0", path="amount"))

    if candidate.kind is TransactionKind.EARNING:
        if candidate.platform is None:
            issues.append(ValidationIssue(code="MISSING_PLATFORM", message="earnings need a platform", path="platform"))
        for name in ("category", "liters"):
            if getattr(candidate, name) is not None:
                issues.append(ValidationIssue(
                    code="UNEXPECTED_FIELD",
                    message=f"{name} is only valid for expenses",
                    path=name,
                ))
    else:
        if candidate.category is None:
            issues.append(ValidationIssue(code="MISSING_CATEGORY", message="expenses need a category", path="category"))
        if candidate.platform is not None:
            issues.append(ValidationIssue(
                code="UNEXPECTED_FIELD",
                message="platform is only valid for earnings",
                path="platform",
            ))
        if candidate.liters is not None and candidate.liters < 0:
            issues.append(ValidationIssue(code="NEGATIVE_LITERS", message="liters must be >= 0", path="liters"))
    return issues


def issues_from_pydantic(exc: ValidationError) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = loc[0] if loc else ""
        if error.get("type") == "missing":
            code = "MISSING_FIELD"
        elif field == "amounts" and "[key]" in loc:
            code = "INVALID_PLATFORM"
        else:
            code = _FIELD_CODES.get(field, "INVALID_FIELD")
        issues.append(ValidationIssue(code=code, message=str(error.get("msg", "invalid value")), path=".".join(loc)))
    return issues
