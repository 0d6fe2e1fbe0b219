import logging
from dataclasses import dataclass, field
from datetime import datetime
from database.ledger import Ledger
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from models.recurring_item import Frequency, RecurringItem
from models.transaction import Transaction
from utils.date_helpers import (
    add_days, add_months, add_weeks, add_years, format_timestamp, resolve_now,
    parse_date, parse_timestamp, to_day,
)
from utils.errors import PersistenceError, ValidationError
from utils.validators import (
    require_category, require_choice, require_currency, require_positive_amount,
    require_text, require_timestamp,
)

logger = logging.getLogger(__name__)


def next_occurrence(base: datetime, frequency: Frequency) -> datetime:
    """One frequency step after base. Month and year steps clamp to month end."""
    frequency = Frequency(frequency)
    if frequency is Frequency.DAILY:
        return add_days(base, 1)
    if frequency is Frequency.WEEKLY:
        return add_weeks(base, 1)
    if frequency is Frequency.BIWEEKLY:
        return add_weeks(base, 2)
    if frequency is Frequency.MONTHLY:
        return add_months(base, 1)
    if frequency is Frequency.YEARLY:
        return add_years(base, 1)
    raise ValueError(f"Unhandled frequency: {frequency}")


@dataclass
class MaterializedOccurrence:
    id: int                     # recurring item id
    description: str
    amount: float
    transaction_id: int | None = None


@dataclass
class ItemFailure:
    id: int
    description: str
    error: str


@dataclass
class ProcessResult:
    processed: list[MaterializedOccurrence] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)


class RecurringService:
    def __init__(self, ledger: Ledger, recurring_dao: RecurringDAO, tx_dao: TransactionDAO):
        self._ledger = ledger
        self._dao = recurring_dao
        self._tx_dao = tx_dao

    def get_all(self, user_id: str) -> list[RecurringItem]:
        return self._dao.get_all(user_id)

    def get_active(self, user_id: str) -> list[RecurringItem]:
        return self._ledger.list_active_recurring_items(user_id)

    def get_by_id(self, item_id: int) -> RecurringItem | None:
        return self._dao.get_by_id(item_id)

    def history(self, item_id: int) -> list[Transaction]:
        """Transactions materialized from the given item, oldest first."""
        return self._tx_dao.get_by_recurring_item(item_id)

    def create(
        self,
        user_id: str,
        description: str,
        amount: float,
        category: str,
        currency: str,
        frequency: str,
        start_date: str,
        end_date: str | None = None,
    ) -> RecurringItem:
        """New items start active; the first due date is one step after start_date."""
        values = self._validate(
            description=description, amount=amount, category=category,
            currency=currency, frequency=frequency, start_date=start_date,
            end_date=end_date,
        )
        start = parse_timestamp(values["start_date"])
        item = self._dao.create(
            user_id=require_text(user_id, "User"),
            description=values["description"],
            amount=values["amount"],
            category=values["category"],
            currency=values["currency"],
            frequency=values["frequency"],
            start_date=values["start_date"],
            next_due_date=format_timestamp(next_occurrence(start, values["frequency"])),
            end_date=values["end_date"],
        )
        logger.info("Created recurring item %s (%s, %s)", item.id, item.description, item.frequency.value)
        return item

    def update(self, item_id: int, **changes) -> RecurringItem:
        """Partial edit.

        A new frequency or start date recomputes next_due_date from
        last_processed (or start_date when never processed).
        """
        current = self._dao.get_by_id(item_id)
        if current is None:
            raise PersistenceError(f"Recurring item {item_id} does not exist")

        merged = {
            "description": current.description,
            "amount": current.amount,
            "category": current.category,
            "currency": current.currency,
            "frequency": current.frequency,
            "start_date": current.start_date,
            "end_date": current.end_date,
        }
        unknown = set(changes) - set(merged) - {"active"}
        if unknown:
            raise ValidationError(f"Cannot edit fields: {sorted(unknown)}")
        merged.update({k: v for k, v in changes.items() if k != "active"})
        values = self._validate(**merged)

        fields = {k: values[k] for k in changes if k in values}
        if "active" in changes:
            fields["active"] = bool(changes["active"])
        if "frequency" in changes or "start_date" in changes:
            base = parse_timestamp(current.last_processed or values["start_date"])
            fields["next_due_date"] = format_timestamp(next_occurrence(base, values["frequency"]))

        return self._ledger.update_recurring_item(item_id, fields)

    def set_active(self, item_id: int, active: bool) -> RecurringItem:
        return self._ledger.update_recurring_item(item_id, {"active": bool(active)})

    def delete(self, item_id: int):
        if self._dao.delete(item_id) == 0:
            raise PersistenceError(f"Recurring item {item_id} does not exist")
        logger.info("Deleted recurring item %s", item_id)

    def process_due_items(self, user_id: str, now: datetime | None = None) -> ProcessResult:
        """Materialize every active item of the user that is due on or before now."""
        items = self._ledger.list_active_recurring_items(user_id)
        return self.process_items(items, now)

    def process_items(self, items: list[RecurringItem], now: datetime | None = None) -> ProcessResult:
        """At most one transaction per item per call; an overdue item advances one step.

        A failure on one item leaves that item untouched and is reported in
        the result; the remaining items are still processed.
        """
        ref = resolve_now(now)
        result = ProcessResult()
        for item in items:
            try:
                occurrence = self._materialize(item, ref)
            except (PersistenceError, ValidationError) as exc:
                logger.warning("Recurring item %s (%s) not processed: %s", item.id, item.description, exc)
                result.failures.append(ItemFailure(item.id, item.description, str(exc)))
                continue
            if occurrence is not None:
                result.processed.append(occurrence)
        if result.processed or result.failures:
            logger.info(
                "Processed recurring items: %d materialized, %d failed",
                len(result.processed), len(result.failures),
            )
        return result

    def _materialize(self, item: RecurringItem, ref: datetime) -> MaterializedOccurrence | None:
        if not item.active:
            return None
        due = parse_date(item.next_due_date or item.start_date)
        if due is None:
            raise ValidationError(f"Unreadable due date {item.next_due_date!r}")
        if due > to_day(ref):
            logger.debug("Recurring item %s not due until %s", item.id, due)
            return None

        stamp = format_timestamp(ref)
        next_due = next_occurrence(ref, item.frequency)
        active = item.active
        end = parse_date(item.end_date)
        if end is not None and to_day(next_due) > end:
            active = False

        fields = {
            "last_processed": stamp,
            "next_due_date": format_timestamp(next_due),
            "active": active,
        }
        with self._ledger.unit_of_work() as ledger:
            tx = ledger.append_transaction(item.user_id, Transaction(
                id=None,
                user_id=item.user_id,
                description=item.description,
                amount=item.amount,
                category=item.category,
                currency=item.currency,
                date=stamp,
                recurring_item_id=item.id,
            ))
            ledger.update_recurring_item(item.id, fields, expected_next_due=item.next_due_date)

        item.last_processed = fields["last_processed"]
        item.next_due_date = fields["next_due_date"]
        item.active = active
        if not active:
            logger.info("Recurring item %s reached its end date and was deactivated", item.id)
        return MaterializedOccurrence(item.id, item.description, item.amount, tx.id)

    def _validate(
        self, description, amount, category, currency, frequency, start_date, end_date
    ) -> dict:
        start = require_timestamp(start_date, "Start date")
        end = None
        if end_date:
            end = require_timestamp(end_date, "End date")
            if end.date() < start.date():
                raise ValidationError("End date cannot be before start date.")
        return {
            "description": require_text(description, "Description"),
            "amount": require_positive_amount(amount),
            "category": require_category(category),
            "currency": require_currency(currency),
            "frequency": require_choice(frequency, Frequency, "frequency"),
            "start_date": format_timestamp(start),
            "end_date": format_timestamp(end) if end else None,
        }
