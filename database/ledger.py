"""The persistence boundary the scheduling services talk to.

Every method maps sqlite3 failures to PersistenceError so callers only ever
handle the app's own exception types.
"""
import sqlite3
from contextlib import contextmanager
from typing import Optional

from database.budget_dao import BudgetDAO
from database.db_manager import DatabaseManager, persistence_errors
from database.income_dao import IncomeDAO
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from models.budget import Budget
from models.income_profile import IncomeProfile
from models.recurring_item import RecurringItem
from models.transaction import Transaction
from utils.errors import ConcurrentUpdateError, PersistenceError


class Ledger:
    def __init__(
        self,
        db: DatabaseManager,
        recurring_dao: RecurringDAO,
        tx_dao: TransactionDAO,
        budget_dao: BudgetDAO,
        income_dao: IncomeDAO,
    ):
        self._db = db
        self._recurring_dao = recurring_dao
        self._tx_dao = tx_dao
        self._budget_dao = budget_dao
        self._income_dao = income_dao

    @contextmanager
    def unit_of_work(self):
        """All writes inside the block are committed together or not at all."""
        try:
            with self._db.transaction():
                yield self
        except sqlite3.Error as exc:
            raise PersistenceError(f"unit of work failed: {exc}") from exc

    @persistence_errors
    def list_active_recurring_items(self, user_id: str) -> list[RecurringItem]:
        return self._recurring_dao.get_active(user_id)

    @persistence_errors
    def append_transaction(self, user_id: str, tx: Transaction) -> Transaction:
        return self._tx_dao.create(
            user_id=user_id,
            description=tx.description,
            amount=tx.amount,
            category=tx.category,
            currency=tx.currency,
            date=tx.date,
            recurring_item_id=tx.recurring_item_id,
        )

    @persistence_errors
    def update_recurring_item(
        self,
        item_id: int,
        fields: dict,
        expected_next_due: str | None = None,
    ) -> RecurringItem:
        changed = self._recurring_dao.update_fields(item_id, fields, expected_next_due)
        if changed == 0:
            if expected_next_due is not None and self._recurring_dao.get_by_id(item_id):
                raise ConcurrentUpdateError(
                    f"Recurring item {item_id} changed since it was read"
                )
            raise PersistenceError(f"Recurring item {item_id} does not exist")
        return self._recurring_dao.get_by_id(item_id)

    @persistence_errors
    def get_income_profile(self, user_id: str) -> Optional[IncomeProfile]:
        return self._income_dao.get(user_id)

    @persistence_errors
    def put_income_profile(self, user_id: str, profile: IncomeProfile) -> None:
        profile.user_id = user_id
        self._income_dao.upsert(profile)

    @persistence_errors
    def list_transactions(self, user_id: str) -> list[Transaction]:
        return self._tx_dao.get_by_user(user_id)

    @persistence_errors
    def list_budgets(self, user_id: str) -> list[Budget]:
        return self._budget_dao.get_by_user(user_id)
