from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from domain.models import DeleteOp, LedgerOp, Transaction, UpsertOp


class StoreError(RuntimeError):
    pass


class TransactionStore(ABC):
    """Base contract for durable transaction collections."""

    name: str = "store"

    @abstractmethod
    def fetch_all(self) -> list[Transaction]:
        """Every stored transaction, newest first."""
        raise NotImplementedError

    @abstractmethod
    def apply(self, ops: Sequence[LedgerOp]) -> None:
        """Apply all ops or none of them; raise StoreError on failure."""
        raise NotImplementedError


def apply_ops(records: dict[str, Transaction], ops: Iterable[LedgerOp]) -> dict[str, Transaction]:
    """Return a copy of ``records`` with ``ops`` applied in order."""
    updated = dict(records)
    for op in ops:
        if isinstance(op, UpsertOp):
            updated[op.id] = op.transaction
        elif isinstance(op, DeleteOp):
            missing = [txn_id for txn_id in op.ids if txn_id not in updated]
            if missing:
                raise StoreError(f"Cannot delete unknown transaction ids: {', '.join(missing)}")
            for txn_id in op.ids:
                del updated[txn_id]
        else:
            raise StoreError(f"Unsupported ledger op {type(op).__name__}")
    return updated


def newest_first(records: Iterable[Transaction]) -> list[Transaction]:
    return sorted(records, key=lambda txn: (txn.occurred_at, txn.id), reverse=True)
