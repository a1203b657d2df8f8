"""Tests for formatzero/credits.py.

Each test uses its own SQLite file in a temp directory.
"""

import os
import sys
import tempfile
import threading
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from formatzero.credits import (
    CreditLedger,
    INITIAL_CREDITS,
    OutOfCreditsError,
    OUT_OF_CREDITS_MESSAGE,
    ensure_credit,
    has_credit,
    main,
    purchase_link,
)


class TestCreditGate(unittest.TestCase):

    def test_positive_balance(self):
        self.assertTrue(has_credit(1))
        self.assertTrue(has_credit(42))

    def test_zero_negative_and_missing(self):
        self.assertFalse(has_credit(0))
        self.assertFalse(has_credit(-1))
        self.assertFalse(has_credit(None))

    def test_non_integers_are_rejected(self):
        self.assertFalse(has_credit(True))
        self.assertFalse(has_credit("3"))
        self.assertFalse(has_credit(1.5))

    def test_ensure_credit_raises_with_message(self):
        with self.assertRaises(OutOfCreditsError) as ctx:
            ensure_credit(0)
        self.assertEqual(str(ctx.exception), OUT_OF_CREDITS_MESSAGE)

    def test_ensure_credit_passes(self):
        ensure_credit(2)


class TestPurchaseLink(unittest.TestCase):

    def test_account_is_percent_encoded(self):
        link = purchase_link("ana+fz@example.com", base_url="https://tienda.example/comprar?email=")
        self.assertEqual(link, "https://tienda.example/comprar?email=ana%2Bfz%40example.com")

    def test_account_with_ampersand_cannot_add_parameters(self):
        link = purchase_link("a&b=1", base_url="https://tienda.example/comprar?email=")
        self.assertEqual(link, "https://tienda.example/comprar?email=a%26b%3D1")

    def test_no_store_configured(self):
        self.assertIsNone(purchase_link("ana@example.com", base_url=""))


class TestCreditLedger(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.db = os.path.join(self.tmpdir, "credits.sqlite3")
        self.ledger = CreditLedger(self.db, initial_credits=3)

    def test_new_account_gets_gift_credits(self):
        self.assertEqual(self.ledger.balance("ana@example.com"), 3)

    def test_consume_decrements(self):
        self.assertEqual(self.ledger.balance("ana"), 3)
        self.assertEqual(self.ledger.consume("ana"), 2)
        self.assertEqual(self.ledger.balance("ana"), 2)

    def test_consume_to_zero_then_error(self):
        self.ledger.balance("ana")
        for expected in (2, 1, 0):
            self.assertEqual(self.ledger.consume("ana"), expected)
        with self.assertRaises(OutOfCreditsError):
            self.ledger.consume("ana")
        self.assertEqual(self.ledger.balance("ana"), 0)

    def test_unknown_account_cannot_consume(self):
        with self.assertRaises(OutOfCreditsError):
            self.ledger.consume("nobody")

    def test_add(self):
        self.assertEqual(self.ledger.add("ana", 10), 13)

    def test_add_rejects_non_positive(self):
        with self.assertRaises(ValueError):
            self.ledger.add("ana", 0)

    def test_balances_persist_across_instances(self):
        self.ledger.balance("ana")
        self.ledger.consume("ana")
        again = CreditLedger(self.db, initial_credits=3)
        self.assertEqual(again.balance("ana"), 2)

    def test_accounts_are_independent(self):
        self.ledger.balance("a")
        self.ledger.balance("b")
        self.ledger.consume("a")
        self.assertEqual(self.ledger.balance("b"), 3)

    def test_concurrent_consume_never_goes_negative(self):
        self.ledger.balance("ana")
        outcomes: list[str] = []
        lock = threading.Lock()

        def _spend():
            try:
                self.ledger.consume("ana")
                result = "ok"
            except OutOfCreditsError:
                result = "empty"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=_spend) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count("ok"), 3)
        self.assertEqual(outcomes.count("empty"), 7)
        self.assertEqual(self.ledger.balance("ana"), 0)


class TestCreditsCLI(unittest.TestCase):

    def test_top_up(self):
        db = os.path.join(tempfile.mkdtemp(), "c.sqlite3")
        main(["ana", "--add", "5", "--db", db])
        self.assertEqual(CreditLedger(db).balance("ana"), INITIAL_CREDITS + 5)


if __name__ == "__main__":
    unittest.main()
