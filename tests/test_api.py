from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from domain.models import ExpenseCategory, Platform, Transaction, TransactionKind
from infrastructure.get_transactions import get_transactions
from infrastructure.ledger_providers.memory_provider import InMemoryTransactionStore
from infrastructure.ledger_providers.provider import StoreError
from interface.api import app


def _noon(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc)


class LedgerApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.day = datetime.now(timezone.utc).date()
        self.store = InMemoryTransactionStore([
            Transaction(id="u1", kind=TransactionKind.EARNING, amount=Decimal("100"), occurred_at=_noon(self.day), platform=Platform.UBER),
            Transaction(id="n1", kind=TransactionKind.EARNING, amount=Decimal("50"), occurred_at=_noon(self.day), platform=Platform.NINETY_NINE),
            Transaction(id="x1", kind=TransactionKind.EXPENSE, amount=Decimal("30"), occurred_at=_noon(self.day), category=ExpenseCategory.FUEL),
        ])
        self._previous_store = get_transactions._store
        get_transactions.set_store(self.store)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        get_transactions._store = self._previous_store

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_summary_for_today(self) -> None:
        response = self.client.get("/summary", params={"period": "day"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["net_profit"], 120.0)
        self.assertEqual(body["per_platform_earnings"]["uber"], 100.0)
        self.assertEqual(body["window"]["period"], "day")

    def test_summary_with_inverted_range(self) -> None:
        response = self.client.get("/summary", params={"start": "2026-03-05", "end": "2026-03-01"})
        self.assertEqual(response.status_code, 422)
        self.assertFalse(response.json()["ok"])

    def test_summary_with_only_an_end_date(self) -> None:
        response = self.client.get("/summary", params={"end": "2026-01-31"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["window"]["start"], "2026-01-24")

    def test_summary_follows_caller_now(self) -> None:
        earlier = self.day - timedelta(days=400)
        response = self.client.get("/summary", params={"period": "day", "now": earlier.isoformat()})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["window"]["start"], earlier.isoformat())
        self.assertEqual(body["transaction_count"], 0)

    def test_summary_uses_caller_timezone(self) -> None:
        response = self.client.get("/summary", params={"period": "day", "timezone": "America/Sao_Paulo"})
        self.assertEqual(response.status_code, 200)
        local_day = datetime.now(ZoneInfo("America/Sao_Paulo")).date()
        self.assertEqual(response.json()["window"]["start"], local_day.isoformat())

    def test_history_with_bad_now(self) -> None:
        response = self.client.get("/history", params={"period": "day", "now": "someday"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["errors"][0]["path"], "now")

    def test_history(self) -> None:
        response = self.client.get("/history")
        self.assertEqual(response.status_code, 200)
        items = response.json()["items"]
        self.assertEqual(len(items), 2)
        self.assertEqual({item["item_type"] for item in items}, {"earnings_group", "expense"})

    def test_edit_earnings(self) -> None:
        response = self.client.put(f"/earnings/{self.day.isoformat()}", json={"amounts": {"Uber": 0, "99": 80}})
        self.assertEqual(response.status_code, 200)
        ops = response.json()["ops"]
        self.assertEqual([op["transaction"]["id"] for op in ops], ["u1", "n1"])
        self.assertEqual([op["transaction"]["amount"] for op in ops], [0.0, 80.0])

    def test_edit_earnings_for_unknown_day(self) -> None:
        missing = self.day - timedelta(days=400)
        response = self.client.put(f"/earnings/{missing.isoformat()}", json={"amounts": {"Uber": 1}})
        self.assertEqual(response.status_code, 404)

    def test_record_expense_and_validation_error(self) -> None:
        created = self.client.post("/expenses", json={"amount": 12.5, "category": "Lavação"})
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["ops"][0]["transaction"]["category"], "Lavação")

        rejected = self.client.post("/expenses", json={"amount": -1, "category": "Lavação"})
        self.assertEqual(rejected.status_code, 422)
        self.assertEqual(rejected.json()["errors"][0]["code"], "NEGATIVE_AMOUNT")

    def test_record_earnings(self) -> None:
        response = self.client.post("/earnings", json={"amounts": {"Outros": 20}})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(self.store.fetch_all()), 4)

    def test_delete_group_and_expense(self) -> None:
        self.assertEqual(self.client.delete(f"/earnings/{self.day.isoformat()}").status_code, 200)
        self.assertEqual(self.client.delete("/expenses/x1").status_code, 200)
        self.assertEqual(self.store.fetch_all(), [])

    def test_store_error_maps_to_503(self) -> None:
        class _BrokenStore(InMemoryTransactionStore):
            def fetch_all(self):
                raise StoreError("ledger file unreadable")

        get_transactions.set_store(_BrokenStore())
        response = self.client.get("/history")
        self.assertEqual(response.status_code, 503)

    def test_run_tool_endpoint(self) -> None:
        response = self.client.post("/tools/reports.period_summary", json={"args": {"period": "year"}})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["result"]["gross_earnings"], 150.0)


if __name__ == "__main__":
    unittest.main()
