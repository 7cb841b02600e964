from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from domain.models import ExpenseCategory, Period, Platform, TransactionKind

_LABEL_NOISE_RE = re.compile(r"[\s_\-]+")


def _label_key(value: str) -> str:
    return _LABEL_NOISE_RE.sub("", value).casefold()


def coerce_label(enum_cls: type[Enum], value: Any) -> Any:
    """Resolve an enum member from its value, its name, or the name in any casing/spacing."""
    if isinstance(value, enum_cls) or not isinstance(value, str):
        return value
    key = _label_key(value)
    for member in enum_cls:
        if key in (_label_key(member.name), _label_key(str(member.value))):
            return member
    return value


def coerce_date(value: Any) -> Any:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not text:
        return value

    # Canonical format first.
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return value


def coerce_moment(value: Any) -> Any:
    """Parse ISO timestamps (``...T12:00:00Z``) and plain dates; leave anything else to pydantic."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if "T" in text or " " in text:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return value
    return coerce_date(text)


def _coerce_platform_keys(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    return {coerce_label(Platform, key): amount for key, amount in value.items()}


class TransactionCandidate(BaseModel):
    """
    Raw transaction input before ledger validation.

    Shape only: amounts/liters must parse as decimals and labels must resolve to
    a known platform/category. Business rules (non-negative amounts, fields
    matching the kind) live in application.validator so they surface as
    field-level issues.
    """

    id: Optional[str] = None
    kind: TransactionKind = Field(alias="type")
    amount: Decimal = Field(allow_inf_nan=False)
    occurred_at: Optional[Union[datetime, date]] = Field(default=None, alias="date")
    platform: Optional[Platform] = None
    category: Optional[ExpenseCategory] = None
    liters: Optional[Decimal] = Field(default=None, allow_inf_nan=False)
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> Any:
        return coerce_label(TransactionKind, value)

    @field_validator("platform", mode="before")
    @classmethod
    def _coerce_platform(cls, value: Any) -> Any:
        return coerce_label(Platform, value)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        return coerce_label(ExpenseCategory, value)

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _coerce_occurred_at(cls, value: Any) -> Any:
        if value == "":
            return None
        return coerce_moment(value)

    @field_validator("liters", mode="before")
    @classmethod
    def _blank_liters(cls, value: Any) -> Any:
        return None if value == "" else value


class EarningsEntry(BaseModel):
    """Amounts earned per platform on one day; zero amounts are not recorded."""

    amounts: Dict[Platform, Decimal] = Field(default_factory=dict)
    on_date: Optional[date] = Field(default=None, alias="date")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("amounts", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> Any:
        return _coerce_platform_keys(value)

    @field_validator("on_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return coerce_date(value)


class EarningsEdit(BaseModel):
    amounts: Dict[Platform, Decimal] = Field(default_factory=dict)
    on_date: Optional[date] = Field(
        default=None, alias="date", description="Move the whole day to this date; omit to keep it."
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("amounts", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> Any:
        return _coerce_platform_keys(value)

    @field_validator("on_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return coerce_date(value)


class ExpenseEdit(BaseModel):
    """Partial expense edit: only fields present in the payload change. ``liters: null`` clears liters."""

    amount: Optional[Decimal] = None
    category: Optional[ExpenseCategory] = None
    liters: Optional[Decimal] = None
    on_date: Optional[date] = Field(default=None, alias="date")
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        return coerce_label(ExpenseCategory, value)

    @field_validator("on_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return coerce_date(value)

    @field_validator("liters", mode="before")
    @classmethod
    def _blank_liters(cls, value: Any) -> Any:
        return None if value == "" else value


class ReportQuery(BaseModel):
    period: Period = Period.MONTH
    start: Optional[date] = None
    end: Optional[date] = None

    @field_validator("period", mode="before")
    @classmethod
    def _coerce_period(cls, value: Any) -> Any:
        return coerce_label(Period, value)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return coerce_date(value)

    @model_validator(mode="after")
    def validate_order(self) -> "ReportQuery":
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("start must be <= end")
        return self


class ToolContext(BaseModel):
    user_id: str
    ledger_id: str = "ldg_main"
    timezone: str = "UTC"


class ToolRequest(BaseModel):
    request_id: str
    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)
    context: ToolContext


class ToolResponse(BaseModel):
    request_id: str
    tool: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    context: ToolContext
