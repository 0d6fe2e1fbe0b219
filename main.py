import argparse
import logging
import os
import sys

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from database.budget_dao import BudgetDAO
from database.income_dao import IncomeDAO
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from database.ledger import Ledger

from services.budget_service import BudgetService
from services.income_service import IncomeService
from services.recurring_service import RecurringService

from utils.app_config import get_db_folder, get_log_level
from utils.constants import APP_NAME, TIER_LABELS
from utils.date_helpers import now, parse_date
from utils.errors import PersistenceError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expense-cadence", description=APP_NAME)
    parser.add_argument("--user", required=True, help="user id to run against")
    parser.add_argument("--db-folder", default=None, help="overrides db_folder from config")
    parser.add_argument(
        "command", choices=["process", "payday", "budgets"],
        help="process: materialize due recurring expenses; "
             "payday: show the next payday; budgets: show monthly budget progress",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # ── Logging ──────────────────────────────────────────────────────────────
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── Database ─────────────────────────────────────────────────────────────
    try:
        db = DatabaseManager.open(db_folder=args.db_folder or get_db_folder())
    except PersistenceError as exc:
        logger.error("%s", exc)
        return 1

    # ── DAOs ─────────────────────────────────────────────────────────────────
    recurring_dao = RecurringDAO(db)
    tx_dao = TransactionDAO(db)
    budget_dao = BudgetDAO(db)
    income_dao = IncomeDAO(db)
    ledger = Ledger(db, recurring_dao, tx_dao, budget_dao, income_dao)

    # ── Services ─────────────────────────────────────────────────────────────
    recurring_svc = RecurringService(ledger, recurring_dao, tx_dao)
    income_svc = IncomeService(ledger)
    budget_svc = BudgetService(ledger, budget_dao)

    ref = now()
    try:
        if args.command == "process":
            result = recurring_svc.process_due_items(args.user, ref)
            for occ in result.processed:
                print(f"Added {occ.description}: {occ.amount:,.2f}")
            for failure in result.failures:
                print(f"Skipped {failure.description}: {failure.error}")
            return 1 if result.failures else 0

        if args.command == "payday":
            profile = income_svc.get_income(args.user, ref)
            if profile is None:
                print("No income set up.")
                return 0
            days = income_svc.days_until_payday(args.user, ref)
            print(f"Next payday {parse_date(profile.next_payment_date)} (in {days} days)")
            return 0

        for p in budget_svc.get_progress(args.user, ref):
            label = TIER_LABELS[p.tier]
            print(
                f"{p.category:<15} {p.spent_amount:>10,.2f} / {p.budget_amount:>10,.2f} "
                f"{p.display_percentage:>4.0f}% {label}".rstrip()
            )
        return 0
    except PersistenceError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
