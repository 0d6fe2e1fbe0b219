from datetime import datetime

import pytest

from database.budget_dao import BudgetDAO
from database.db_manager import DatabaseManager
from database.income_dao import IncomeDAO
from database.ledger import Ledger
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from services.budget_service import BudgetService
from services.income_service import IncomeService
from services.recurring_service import RecurringService
from services.transaction_service import TransactionService

USER = "user-1"
NOW = datetime(2024, 3, 15, 9, 30)


@pytest.fixture
def db():
    manager = DatabaseManager(":memory:")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def recurring_dao(db):
    return RecurringDAO(db)


@pytest.fixture
def tx_dao(db):
    return TransactionDAO(db)


@pytest.fixture
def budget_dao(db):
    return BudgetDAO(db)


@pytest.fixture
def ledger(db, recurring_dao, tx_dao, budget_dao):
    return Ledger(db, recurring_dao, tx_dao, budget_dao, IncomeDAO(db))


@pytest.fixture
def recurring_svc(ledger, recurring_dao, tx_dao):
    return RecurringService(ledger, recurring_dao, tx_dao)


@pytest.fixture
def income_svc(ledger):
    return IncomeService(ledger)


@pytest.fixture
def budget_svc(ledger, budget_dao):
    return BudgetService(ledger, budget_dao)


@pytest.fixture
def tx_svc(ledger, tx_dao):
    return TransactionService(ledger, tx_dao)
