import logging
from datetime import datetime
from database.budget_dao import BudgetDAO
from database.ledger import Ledger
from models.budget import Budget, CategoryProgress
from models.transaction import Transaction
from utils.constants import (
    BUDGET_APPROACHING_PCT, BUDGET_DISPLAY_CAP_PCT, BUDGET_PERIODS, BUDGET_REACHED_PCT,
    TIER_APPROACHING, TIER_OK, TIER_REACHED,
)
from utils.date_helpers import first_day_of_month, parse_timestamp, resolve_now
from utils.errors import PersistenceError, ValidationError
from utils.validators import require_category, require_currency, require_positive_amount

logger = logging.getLogger(__name__)


def this_month_transactions(transactions: list[Transaction], now: datetime) -> list[Transaction]:
    """Transactions dated from the first of now's month up to now."""
    now = resolve_now(now)
    start = first_day_of_month(now)
    result = []
    for tx in transactions:
        when = parse_timestamp(tx.date)
        if when is not None and start <= when <= now:
            result.append(tx)
    return result


def spending_by_category(transactions: list[Transaction]) -> dict[str, float]:
    """Sum of amounts per category. Currencies are added together as-is."""
    totals: dict[str, float] = {}
    for tx in transactions:
        totals[tx.category] = totals.get(tx.category, 0.0) + tx.amount
    return totals


def alert_tier(percentage: float) -> str:
    if percentage >= BUDGET_REACHED_PCT:
        return TIER_REACHED
    if percentage >= BUDGET_APPROACHING_PCT:
        return TIER_APPROACHING
    return TIER_OK


def monthly_progress(
    transactions: list[Transaction], budgets: list[Budget], now: datetime
) -> list[CategoryProgress]:
    """Spent-vs-limit for every monthly budget over the current month.

    The tier is taken from the uncapped percentage; only display_percentage
    is capped.
    """
    now = resolve_now(now)
    spent = spending_by_category(this_month_transactions(transactions, now))
    progress = []
    for budget in budgets:
        if budget.period != "monthly":
            continue
        spent_amount = spent.get(budget.category, 0.0)
        pct = spent_amount / budget.amount * 100 if budget.amount > 0 else 0.0
        progress.append(CategoryProgress(
            category=budget.category,
            budget_amount=budget.amount,
            spent_amount=spent_amount,
            percentage=pct,
            display_percentage=min(pct, BUDGET_DISPLAY_CAP_PCT),
            tier=alert_tier(pct),
        ))
    return progress


class BudgetService:
    def __init__(self, ledger: Ledger, budget_dao: BudgetDAO):
        self._ledger = ledger
        self._dao = budget_dao

    def get_all(self, user_id: str) -> list[Budget]:
        return self._ledger.list_budgets(user_id)

    def get_progress(self, user_id: str, now: datetime | None = None) -> list[CategoryProgress]:
        """Return this month's progress for every monthly budget of the user."""
        ref = resolve_now(now)
        progress = monthly_progress(
            self._ledger.list_transactions(user_id), self._ledger.list_budgets(user_id), ref
        )
        for p in progress:
            if p.tier != TIER_OK:
                logger.info("Budget %s at %.0f%% (%s)", p.category, p.percentage, p.tier)
        return progress

    def create(
        self, user_id: str, category: str, amount: float, period: str, currency: str
    ) -> Budget:
        values = self._validate(category, amount, period, currency)
        return self._dao.create(user_id, **values)

    def update(self, budget_id: int, **changes) -> Budget:
        current = self._dao.get_by_id(budget_id)
        if current is None:
            raise PersistenceError(f"Budget {budget_id} does not exist")
        merged = {
            "category": current.category,
            "amount": current.amount,
            "period": current.period,
            "currency": current.currency,
        }
        unknown = set(changes) - set(merged)
        if unknown:
            raise ValidationError(f"Cannot edit fields: {sorted(unknown)}")
        merged.update(changes)
        values = self._validate(**merged)
        self._dao.update_fields(budget_id, {k: values[k] for k in changes})
        return self._dao.get_by_id(budget_id)

    def delete(self, budget_id: int):
        if self._dao.delete(budget_id) == 0:
            raise PersistenceError(f"Budget {budget_id} does not exist")

    def _validate(self, category, amount, period, currency) -> dict:
        if period not in BUDGET_PERIODS:
            raise ValidationError(f"Invalid budget period: {period!r}")
        return {
            "category": require_category(category),
            "amount": require_positive_amount(amount, "Budget amount"),
            "period": period,
            "currency": require_currency(currency),
        }
