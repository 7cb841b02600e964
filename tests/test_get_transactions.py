from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from infrastructure.get_transactions import STORE_PATH_ENV, GetTransactions, store_from_env
from infrastructure.ledger_providers.json_file_provider import JsonFileTransactionStore
from infrastructure.ledger_providers.memory_provider import InMemoryTransactionStore


class StoreFromEnvTests(unittest.TestCase):
    def test_unset_path_gives_memory_store(self) -> None:
        with patch.dict(os.environ, {STORE_PATH_ENV: ""}):
            self.assertIsInstance(store_from_env(), InMemoryTransactionStore)

    def test_path_gives_json_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "ledger.json"
            with patch.dict(os.environ, {STORE_PATH_ENV: str(path)}):
                store = store_from_env()
        self.assertIsInstance(store, JsonFileTransactionStore)
        self.assertEqual(store.path, path)


class GetTransactionsTests(unittest.TestCase):
    def test_store_is_built_lazily_once(self) -> None:
        facade = GetTransactions()
        with patch("infrastructure.get_transactions.store_from_env", return_value=InMemoryTransactionStore()) as factory:
            first = facade.store
            second = facade.store
        self.assertIs(first, second)
        factory.assert_called_once()
        self.assertEqual(facade.name, "memory")

    def test_set_store_swaps_backend(self) -> None:
        facade = GetTransactions(InMemoryTransactionStore())
        replacement = InMemoryTransactionStore()
        facade.set_store(replacement)
        self.assertIs(facade.store, replacement)
        self.assertEqual(facade.fetch_all(), [])


if __name__ == "__main__":
    unittest.main()
