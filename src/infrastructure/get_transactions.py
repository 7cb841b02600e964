from __future__ import annotations

import logging
import os
from typing import Sequence

from domain.models import LedgerOp, Transaction
from infrastructure.ledger_providers.json_file_provider import JsonFileTransactionStore
from infrastructure.ledger_providers.memory_provider import InMemoryTransactionStore
from infrastructure.ledger_providers.provider import TransactionStore

logger = logging.getLogger(__name__)

STORE_PATH_ENV = "RIDELEDGER_STORE_PATH"


def store_from_env() -> TransactionStore:
    path = os.getenv(STORE_PATH_ENV, "").strip()
    if path:
        return JsonFileTransactionStore(path)
    return InMemoryTransactionStore()


class GetTransactions(TransactionStore):
    """
    Process-wide access point to the configured transaction store.

    Every call hands out a fresh snapshot; nothing is cached between calls.
    The backing store can be swapped at runtime (tests, CLI flags).
    """

    def __init__(self, store: TransactionStore | None = None) -> None:
        self._store = store

    @property
    def store(self) -> TransactionStore:
        if self._store is None:
            self._store = store_from_env()
            logger.info("Transaction store configured name=%s", self._store.name)
        return self._store

    @property
    def name(self) -> str:  # type: ignore[override]
        return self.store.name

    def set_store(self, store: TransactionStore) -> None:
        self._store = store

    def fetch_all(self) -> list[Transaction]:
        return self.store.fetch_all()

    def apply(self, ops: Sequence[LedgerOp]) -> None:
        self.store.apply(ops)


# Singleton instance used across the codebase.
get_transactions = GetTransactions()
