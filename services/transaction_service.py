from datetime import datetime
from database.ledger import Ledger
from database.transaction_dao import TransactionDAO
from models.transaction import Transaction
from services.budget_service import spending_by_category, this_month_transactions
from utils.date_helpers import format_timestamp, parse_date, parse_timestamp, resolve_now
from utils.errors import PersistenceError, ValidationError
from utils.validators import (
    require_category, require_currency, require_positive_amount, require_text, require_timestamp,
)

SORT_KEYS = {
    "date": lambda tx: parse_timestamp(tx.date) or datetime.min,
    "amount": lambda tx: tx.amount,
}


class TransactionService:
    def __init__(self, ledger: Ledger, tx_dao: TransactionDAO):
        self._ledger = ledger
        self._dao = tx_dao

    def get_for_user(self, user_id: str) -> list[Transaction]:
        return self._ledger.list_transactions(user_id)

    def get_this_month(self, user_id: str, now: datetime | None = None) -> list[Transaction]:
        return this_month_transactions(self.get_for_user(user_id), resolve_now(now))

    def get_totals_by_category(self, user_id: str, now: datetime | None = None) -> dict[str, float]:
        return spending_by_category(self.get_this_month(user_id, now))

    def get_filtered(
        self,
        user_id: str,
        category: str | None = None,
        search: str = "",
        sort_by: str = "date-desc",
    ) -> list[Transaction]:
        """Expense list view: optional category and description filter, then sort.

        sort_by is "<date|amount>-<asc|desc>".
        """
        key_name, _, direction = sort_by.partition("-")
        if key_name not in SORT_KEYS or direction not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort option: {sort_by!r}")
        needle = search.strip().lower()
        txs = [
            tx for tx in self.get_for_user(user_id)
            if (not category or tx.category == category)
            and needle in tx.description.lower()
        ]
        return sorted(txs, key=SORT_KEYS[key_name], reverse=direction == "desc")

    def get_totals_by_date(self, transactions: list[Transaction]) -> dict[str, float]:
        """Per-day totals keyed by YYYY-MM-DD, oldest day first."""
        totals: dict[str, float] = {}
        for tx in sorted(transactions, key=SORT_KEYS["date"]):
            day = parse_date(tx.date)
            if day is None:
                continue
            key = day.isoformat()
            totals[key] = totals.get(key, 0.0) + tx.amount
        return totals

    def get_total(self, transactions: list[Transaction], currency: str | None = None) -> float:
        """Sum of amounts, optionally only those in one currency."""
        return sum(
            tx.amount for tx in transactions
            if currency is None or tx.currency == currency
        )

    def create(
        self,
        user_id: str,
        description: str,
        amount: float,
        category: str,
        currency: str,
        date: str,
    ) -> Transaction:
        values = self._validate(description, amount, category, currency, date)
        return self._ledger.append_transaction(user_id, Transaction(id=None, user_id=user_id, **values))

    def update(
        self,
        tx_id: int,
        description: str,
        amount: float,
        category: str,
        currency: str,
        date: str,
    ) -> Transaction:
        values = self._validate(description, amount, category, currency, date)
        if self._dao.get_by_id(tx_id) is None:
            raise PersistenceError(f"Transaction {tx_id} does not exist")
        return self._dao.update(tx_id, **values)

    def delete(self, tx_id: int):
        if self._dao.delete(tx_id) == 0:
            raise PersistenceError(f"Transaction {tx_id} does not exist")

    def _validate(self, description, amount, category, currency, date) -> dict:
        return {
            "description": require_text(description, "Description"),
            "amount": require_positive_amount(amount),
            "category": require_category(category),
            "currency": require_currency(currency),
            "date": format_timestamp(require_timestamp(date)),
        }
