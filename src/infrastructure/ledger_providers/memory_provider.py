from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from domain.models import LedgerOp, Transaction
from infrastructure.ledger_providers.provider import StoreError, TransactionStore, apply_ops, newest_first

logger = logging.getLogger(__name__)


class InMemoryTransactionStore(TransactionStore):
    name = "memory"

    def __init__(self, transactions: Iterable[Transaction] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, Transaction] = {}
        for txn in transactions or []:
            if txn.id in self._records:
                raise StoreError(f"Transaction {txn.id} already exists.")
            self._records[txn.id] = txn

    def fetch_all(self) -> list[Transaction]:
        with self._lock:
            return newest_first(self._records.values())

    def apply(self, ops: Sequence[LedgerOp]) -> None:
        with self._lock:
            # apply_ops works on a copy, so a failing op leaves the store untouched.
            self._records = apply_ops(self._records, ops)
        logger.info("Memory store applied ops=%d records=%d", len(ops), len(self._records))
