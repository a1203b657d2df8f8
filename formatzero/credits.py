"""Per-account generation credits.

Every study guide costs one credit.  The gate is checked before the
model is called and the credit is taken only after a guide was
produced, so a failed generation is free.

Balances live in a small SQLite file (``credits_db`` in config.txt).
New accounts start with ``initial_credits`` gift credits.  The
decrement is a single conditional ``UPDATE … WHERE credits > 0``, so
two concurrent requests for the same account can never spend the same
credit twice or push the balance below zero.

Usage::

    ledger = CreditLedger()
    ensure_credit(ledger.balance("ana@example.com"))
    ...
    left = ledger.consume("ana@example.com")

CLI::

    python -m formatzero.credits ana@example.com            # show balance
    python -m formatzero.credits ana@example.com --add 10   # top up
"""

import logging
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from urllib.parse import quote

from formatzero.config import CFG

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH: str = str(CFG.get("credits_db", "credits.sqlite3"))
INITIAL_CREDITS: int = int(CFG.get("initial_credits", 3))
PURCHASE_URL: str = str(CFG.get("purchase_url", ""))

OUT_OF_CREDITS_MESSAGE = (
    "Te has quedado sin créditos. Compra más para seguir generando guías."
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id      TEXT PRIMARY KEY,
    credits INTEGER NOT NULL CHECK (credits >= 0)
)
"""


class OutOfCreditsError(RuntimeError):
    """The account has no credit left for another guide."""

    def __init__(self, message: str = OUT_OF_CREDITS_MESSAGE):
        super().__init__(message)


def purchase_link(account_id: str, base_url: str = PURCHASE_URL) -> str | None:
    """Return the checkout URL for *account_id*, or None if none is set.

    The account id is percent-encoded, so ``ana+fz@example.com`` reaches
    the checkout page intact.
    """
    if not base_url:
        return None
    return f"{base_url}{quote(account_id, safe='')}"


def has_credit(balance: int | None) -> bool:
    """Return True only for a strictly positive integer balance."""
    return isinstance(balance, int) and not isinstance(balance, bool) and balance > 0


def ensure_credit(balance: int | None) -> None:
    """Raise :class:`OutOfCreditsError` unless *balance* allows a guide."""
    if not has_credit(balance):
        logger.info(f"Credit gate closed (balance={balance!r})")
        raise OutOfCreditsError()


class CreditLedger:
    """SQLite-backed credit balances keyed by account id (e-mail)."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        initial_credits: int = INITIAL_CREDITS,
    ):
        self.db_path = db_path
        self.initial_credits = initial_credits
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        with self._connect() as conn:
            conn.execute(_SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        conn = sqlite3.connect(self.db_path, timeout=10)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def balance(self, account_id: str) -> int:
        """Return the balance of *account_id*, opening the account if new."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (id, credits) VALUES (?, ?)",
                (account_id, self.initial_credits),
            )
            row = conn.execute(
                "SELECT credits FROM profiles WHERE id = ?", (account_id,)
            ).fetchone()
        return int(row[0])

    def consume(self, account_id: str) -> int:
        """Take one credit from *account_id* and return the new balance.

        Raises
        ------
        OutOfCreditsError
            If the balance is already zero (or the account is unknown).
        """
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE profiles SET credits = credits - 1 "
                "WHERE id = ? AND credits > 0",
                (account_id,),
            )
            if cur.rowcount == 0:
                raise OutOfCreditsError()
            row = conn.execute(
                "SELECT credits FROM profiles WHERE id = ?", (account_id,)
            ).fetchone()
        left = int(row[0])
        logger.info(f"Consumed 1 credit for {account_id} ({left} left)")
        return left

    def add(self, account_id: str, amount: int) -> int:
        """Add *amount* credits to *account_id* and return the new balance."""
        if amount <= 0:
            raise ValueError(f"Credit top-up must be positive, got {amount}")
        self.balance(account_id)
        with self._connect() as conn:
            conn.execute(
                "UPDATE profiles SET credits = credits + ? WHERE id = ?",
                (amount, account_id),
            )
        left = self.balance(account_id)
        logger.info(f"Added {amount} credit(s) to {account_id} ({left} now)")
        return left


def main(argv: list[str] | None = None) -> None:
    """Show or top up the balance of an account."""
    import argparse

    from rich.console import Console

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Show or top up credits")
    parser.add_argument("account", help="Account id (e-mail)")
    parser.add_argument(
        "--add", type=int, default=0, help="Credits to add (default: 0)",
    )
    parser.add_argument(
        "--db", default=DEFAULT_DB_PATH, help=f"Ledger file (default: {DEFAULT_DB_PATH})",
    )
    args = parser.parse_args(argv)

    ledger = CreditLedger(args.db)
    left = ledger.add(args.account, args.add) if args.add else ledger.balance(args.account)
    Console().print(f"[bold cyan]{args.account}[/bold cyan]: {left} crédito(s)")


if __name__ == "__main__":
    main()
