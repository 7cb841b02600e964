from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Sequence

from domain.models import ExpenseCategory, LedgerOp, Platform, Transaction, TransactionKind
from domain.schemas import coerce_label
from infrastructure.ledger_providers.provider import StoreError, TransactionStore, apply_ops, newest_first

logger = logging.getLogger(__name__)


class JsonFileTransactionStore(TransactionStore):
    """
    Transactions kept as a JSON array of rows in the driver app's record shape:

        {"id": "...", "type": "EARNING", "amount": 100.0, "date": "2026-10-19T12:00:00Z",
         "platform": "Uber"}
        {"id": "...", "type": "EXPENSE", "amount": 30.0, "date": "...",
         "category": "Combustível", "liters": 5.2}

    A missing file is an empty ledger. Writes replace the file atomically.
    """

    name = "json_file"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def fetch_all(self) -> list[Transaction]:
        with self._lock:
            records = self._load()
        logger.info("JSON store loaded path=%s count=%d", self._path, len(records))
        return newest_first(records.values())

    def apply(self, ops: Sequence[LedgerOp]) -> None:
        with self._lock:
            records = apply_ops(self._load(), ops)
            self._write(records.values())
        logger.info("JSON store applied ops=%d records=%d path=%s", len(ops), len(records), self._path)

    def _load(self) -> dict[str, Transaction]:
        if not self._path.exists():
            return {}
        try:
            rows = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Unable to read transaction file {self._path}: {exc}") from exc

        if not isinstance(rows, list):
            raise StoreError(f"Expected a list of transaction rows in {self._path}, got {type(rows).__name__}")

        records: dict[str, Transaction] = {}
        for row in rows:
            if not isinstance(row, dict):
                raise StoreError(f"Expected transaction row object, got {type(row).__name__}")
            txn = self._normalize_transaction_row(row)
            if txn.id in records:
                raise StoreError(f"Duplicate transaction id {txn.id!r} in {self._path}")
            records[txn.id] = txn
        return records

    def _write(self, records: Any) -> None:
        rows = [self._serialize_transaction(txn) for txn in newest_first(records)]
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".ledger-", suffix=".json", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError(f"Unable to write transaction file {self._path}: {exc}") from exc

    def _normalize_transaction_row(self, row: dict[str, Any]) -> Transaction:
        txn_id = str(row.get("id") or "").strip()
        if not txn_id:
            raise StoreError("Transaction row missing id")

        kind = coerce_label(TransactionKind, row.get("type") or row.get("kind"))
        if not isinstance(kind, TransactionKind):
            raise StoreError(f"Unsupported transaction type {row.get('type')!r} for {txn_id}")

        platform = category = None
        liters = None
        if kind is TransactionKind.EARNING:
            platform = coerce_label(Platform, row.get("platform"))
            if not isinstance(platform, Platform):
                raise StoreError(f"Unsupported platform {row.get('platform')!r} for {txn_id}")
        else:
            category = coerce_label(ExpenseCategory, row.get("category"))
            if not isinstance(category, ExpenseCategory):
                raise StoreError(f"Unsupported expense category {row.get('category')!r} for {txn_id}")
            if row.get("liters") not in (None, ""):
                liters = self._parse_decimal(row["liters"], "liters", txn_id)

        return Transaction(
            id=txn_id,
            kind=kind,
            amount=self._parse_decimal(row.get("amount"), "amount", txn_id),
            occurred_at=self._parse_row_date(row.get("date"), txn_id),
            platform=platform,
            category=category,
            liters=liters,
            description=row.get("description") or None,
        )

    def _serialize_transaction(self, txn: Transaction) -> dict[str, Any]:
        row: dict[str, Any] = {
            "id": txn.id,
            "type": txn.kind.value,
            "amount": float(txn.amount),
            "date": txn.occurred_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        if txn.platform is not None:
            row["platform"] = txn.platform.value
        if txn.category is not None:
            row["category"] = txn.category.value
        if txn.liters is not None:
            row["liters"] = float(txn.liters)
        if txn.description:
            row["description"] = txn.description
        return row

    def _parse_decimal(self, raw: Any, field: str, txn_id: str) -> Decimal:
        try:
            value = Decimal(str(raw))
        except (InvalidOperation, ValueError) as exc:
            raise StoreError(f"Invalid {field} {raw!r} for {txn_id}") from exc
        if not value.is_finite() or value < 0:
            raise StoreError(f"Invalid {field} {raw!r} for {txn_id}")
        return value

    def _parse_row_date(self, raw_date: Any, txn_id: str) -> datetime:
        value = str(raw_date or "").strip()
        if not value:
            raise StoreError(f"Transaction row {txn_id} missing date")
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise StoreError(f"Unsupported transaction date format for {txn_id}: {value!r}") from None
        if len(value) == 10:
            # Bare dates get the same noon pin new records are written with.
            parsed = datetime.combine(date.fromisoformat(value), datetime.min.time()).replace(hour=12)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
