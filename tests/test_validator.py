from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from application.validator import (
    LedgerValidationError,
    ensure_valid,
    normalize_occurred_at,
    validate,
)
from domain.models import ExpenseCategory, Platform, Transaction, TransactionKind


class NormalizeOccurredAtTests(unittest.TestCase):
    def test_date_is_pinned_to_noon_utc(self) -> None:
        moment = normalize_occurred_at(date(2026, 3, 15))
        self.assertEqual(moment, datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc))

    def test_timestamp_keeps_only_its_calendar_date(self) -> None:
        moment = normalize_occurred_at(datetime(2026, 3, 15, 23, 59, tzinfo=timezone.utc))
        self.assertEqual(moment.date(), date(2026, 3, 15))
        self.assertEqual(moment.hour, 12)

    def test_missing_value_uses_now(self) -> None:
        now = datetime(2026, 1, 2, 7, 30, tzinfo=timezone.utc)
        self.assertEqual(normalize_occurred_at(None, now=now), datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc))


class ValidateTests(unittest.TestCase):
    def test_valid_earning(self) -> None:
        txn = validate({"type": "EARNING", "amount": "120.50", "date": "2026-03-15", "platform": "Uber"})
        self.assertIsInstance(txn, Transaction)
        self.assertEqual(txn.kind, TransactionKind.EARNING)
        self.assertEqual(txn.amount, Decimal("120.50"))
        self.assertEqual(txn.platform, Platform.UBER)
        self.assertEqual(txn.occurred_at, datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc))
        self.assertTrue(txn.id)

    def test_valid_expense_with_liters(self) -> None:
        txn = validate({
            "type": "expense",
            "amount": 200,
            "date": "2026-03-15T08:00:00Z",
            "category": "Combustível",
            "liters": "35.2",
        })
        self.assertIsInstance(txn, Transaction)
        self.assertEqual(txn.category, ExpenseCategory.FUEL)
        self.assertEqual(txn.liters, Decimal("35.2"))
        self.assertIsNone(txn.platform)

    def test_labels_accept_member_names(self) -> None:
        txn = validate({"type": "earning", "amount": 10, "date": "2026-03-15", "platform": "ninety_nine"})
        self.assertIsInstance(txn, Transaction)
        self.assertEqual(txn.platform, Platform.NINETY_NINE)

    def test_zero_amount_is_allowed(self) -> None:
        txn = validate({"type": "EARNING", "amount": 0, "date": "2026-03-15", "platform": "99"})
        self.assertIsInstance(txn, Transaction)
        self.assertEqual(txn.amount, Decimal("0"))

    def test_negative_amount_is_rejected(self) -> None:
        result = validate({"type": "EARNING", "amount": -5, "date": "2026-03-15", "platform": "Uber"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertEqual(result.codes, ["NEGATIVE_AMOUNT"])
        self.assertEqual(result.issues[0].path, "amount")

    def test_earning_without_platform(self) -> None:
        result = validate({"type": "EARNING", "amount": 10, "date": "2026-03-15"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertIn("MISSING_PLATFORM", result.codes)

    def test_expense_without_category(self) -> None:
        result = validate({"type": "EXPENSE", "amount": 10, "date": "2026-03-15"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertIn("MISSING_CATEGORY", result.codes)

    def test_expense_with_platform_is_rejected(self) -> None:
        result = validate({"type": "EXPENSE", "amount": 10, "category": "Lavação", "platform": "Uber"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertIn("UNEXPECTED_FIELD", result.codes)

    def test_earning_with_liters_is_rejected(self) -> None:
        result = validate({"type": "EARNING", "amount": 10, "platform": "Uber", "liters": 3})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertEqual([issue.path for issue in result.issues], ["liters"])

    def test_unparseable_amount_reports_field_code(self) -> None:
        result = validate({"type": "EARNING", "amount": "abc", "platform": "Uber"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertEqual(result.codes, ["INVALID_AMOUNT"])

    def test_unknown_platform_reports_field_code(self) -> None:
        result = validate({"type": "EARNING", "amount": 10, "platform": "Lyft"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertEqual(result.codes, ["INVALID_PLATFORM"])

    def test_missing_amount(self) -> None:
        result = validate({"type": "EXPENSE", "category": "Outros"})
        self.assertIsInstance(result, LedgerValidationError)
        self.assertEqual(result.codes, ["MISSING_FIELD"])

    def test_omitted_date_uses_now(self) -> None:
        now = datetime(2026, 5, 1, 3, 0, tzinfo=timezone.utc)
        txn = validate({"type": "EXPENSE", "amount": 5, "category": "Alimentação"}, now=now)
        self.assertIsInstance(txn, Transaction)
        self.assertEqual(txn.day, date(2026, 5, 1))

    def test_ensure_valid_raises(self) -> None:
        with self.assertRaises(LedgerValidationError) as ctx:
            ensure_valid({"type": "EXPENSE", "amount": -1, "category": "Outros"})
        self.assertEqual(ctx.exception.as_dicts()[0]["code"], "NEGATIVE_AMOUNT")


if __name__ == "__main__":
    unittest.main()
