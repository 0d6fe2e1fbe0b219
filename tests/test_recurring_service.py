import copy
import sqlite3
from datetime import datetime

import pytest

from conftest import NOW, USER
from models.recurring_item import Frequency, RecurringItem
from utils.errors import PersistenceError, ValidationError


def _add(svc, **overrides):
    values = dict(
        user_id=USER,
        description="Gym",
        amount=30.0,
        category="Healthcare",
        currency="USD",
        frequency="daily",
        start_date="2024-03-10",
    )
    values.update(overrides)
    return svc.create(**values)


# ── Management ────────────────────────────────────────────────────────────────

def test_create_sets_first_due_date_one_step_after_start(recurring_svc):
    item = _add(recurring_svc, frequency="monthly", start_date="2024-01-31")
    assert item.active
    assert item.last_processed is None
    assert item.frequency is Frequency.MONTHLY
    assert item.start_date == "2024-01-31T00:00:00"
    assert item.next_due_date == "2024-02-29T00:00:00"


@pytest.mark.parametrize("overrides", [
    {"amount": 0},
    {"amount": -5},
    {"description": "  "},
    {"category": "Groceries"},
    {"currency": "usd"},
    {"frequency": "hourly"},
    {"start_date": "31/01/2024"},
    {"end_date": "2024-03-01"},
])
def test_create_rejects_invalid_input(recurring_svc, overrides):
    with pytest.raises(ValidationError):
        _add(recurring_svc, **overrides)
    assert recurring_svc.get_all(USER) == []


def test_update_frequency_recomputes_from_start_when_never_processed(recurring_svc):
    item = _add(recurring_svc, start_date="2024-03-10")
    updated = recurring_svc.update(item.id, frequency="weekly")
    assert updated.frequency is Frequency.WEEKLY
    assert updated.next_due_date == "2024-03-17T00:00:00"


def test_update_frequency_recomputes_from_last_processed(recurring_svc):
    item = _add(recurring_svc, start_date="2024-03-10")
    recurring_svc.process_due_items(USER, NOW)
    updated = recurring_svc.update(item.id, frequency="monthly")
    assert updated.last_processed == "2024-03-15T09:30:00"
    assert updated.next_due_date == "2024-04-15T09:30:00"


def test_update_without_schedule_change_keeps_due_date(recurring_svc):
    item = _add(recurring_svc)
    updated = recurring_svc.update(item.id, amount=45.5, description="Gym plus")
    assert updated.amount == 45.5
    assert updated.description == "Gym plus"
    assert updated.next_due_date == item.next_due_date


def test_update_validates_merged_values(recurring_svc):
    item = _add(recurring_svc)
    with pytest.raises(ValidationError):
        recurring_svc.update(item.id, amount=0)
    with pytest.raises(ValidationError):
        recurring_svc.update(item.id, user_id="someone-else")


def test_update_missing_item(recurring_svc):
    with pytest.raises(PersistenceError):
        recurring_svc.update(404, amount=10)


def test_delete(recurring_svc):
    item = _add(recurring_svc)
    recurring_svc.delete(item.id)
    assert recurring_svc.get_by_id(item.id) is None
    with pytest.raises(PersistenceError):
        recurring_svc.delete(item.id)


# ── Processing ────────────────────────────────────────────────────────────────

def test_due_item_is_materialized_once(recurring_svc, ledger):
    item = _add(recurring_svc)

    result = recurring_svc.process_due_items(USER, NOW)

    assert [(o.id, o.description, o.amount) for o in result.processed] == [(item.id, "Gym", 30.0)]
    assert result.failures == []
    [tx] = ledger.list_transactions(USER)
    assert tx.date == "2024-03-15T09:30:00"
    assert tx.amount == 30.0
    assert tx.category == "Healthcare"
    assert tx.currency == "USD"
    assert tx.recurring_item_id == item.id
    stored = recurring_svc.get_by_id(item.id)
    assert stored.last_processed == "2024-03-15T09:30:00"
    assert stored.next_due_date == "2024-03-16T09:30:00"
    assert stored.active


def test_second_run_same_day_is_a_no_op(recurring_svc, ledger):
    _add(recurring_svc)
    recurring_svc.process_due_items(USER, NOW)

    again = recurring_svc.process_due_items(USER, NOW.replace(hour=22))

    assert again.processed == []
    assert again.failures == []
    assert len(ledger.list_transactions(USER)) == 1


def test_long_overdue_item_advances_one_step_per_run(recurring_svc, ledger):
    item = _add(recurring_svc, frequency="weekly", start_date="2024-01-01")

    result = recurring_svc.process_due_items(USER, NOW)

    assert len(result.processed) == 1
    assert len(ledger.list_transactions(USER)) == 1
    assert recurring_svc.get_by_id(item.id).next_due_date == "2024-03-22T09:30:00"


def test_item_not_yet_due_is_skipped(recurring_svc, ledger):
    _add(recurring_svc, frequency="monthly", start_date="2024-03-15")
    assert recurring_svc.process_due_items(USER, NOW).processed == []
    assert ledger.list_transactions(USER) == []


def test_due_check_ignores_time_of_day(recurring_svc, recurring_dao):
    item = recurring_dao.create(
        user_id=USER, description="Late", amount=5.0, category="Other", currency="USD",
        frequency=Frequency.DAILY, start_date="2024-03-01T00:00:00",
        next_due_date="2024-03-15T23:00:00",
    )
    result = recurring_svc.process_due_items(USER, NOW)
    assert [o.id for o in result.processed] == [item.id]


def test_end_date_deactivates_item(recurring_svc, ledger):
    item = _add(recurring_svc, start_date="2024-03-10", end_date="2024-03-15")

    result = recurring_svc.process_due_items(USER, NOW)

    assert len(result.processed) == 1
    stored = recurring_svc.get_by_id(item.id)
    assert not stored.active
    assert stored.next_due_date == "2024-03-16T09:30:00"
    assert recurring_svc.get_active(USER) == []
    later = recurring_svc.process_due_items(USER, datetime(2024, 3, 20))
    assert later.processed == []
    assert len(ledger.list_transactions(USER)) == 1


def test_end_date_on_next_due_day_keeps_item_active(recurring_svc):
    item = _add(recurring_svc, start_date="2024-03-10", end_date="2024-03-16")
    recurring_svc.process_due_items(USER, NOW)
    assert recurring_svc.get_by_id(item.id).active


def test_inactive_items_never_materialize(recurring_svc, ledger):
    item = _add(recurring_svc)
    recurring_svc.set_active(item.id, False)
    stale_copy = recurring_svc.get_by_id(item.id)

    assert recurring_svc.process_items([stale_copy], NOW).processed == []
    assert recurring_svc.process_due_items(USER, NOW).processed == []
    assert ledger.list_transactions(USER) == []


def test_failure_on_one_item_does_not_stop_the_batch(recurring_svc, ledger):
    good = _add(recurring_svc)
    ghost = RecurringItem(
        id=999, user_id=USER, description="Ghost", amount=1.0, category="Other",
        currency="USD", frequency=Frequency.DAILY, start_date="2024-03-01T00:00:00",
        next_due_date="2024-03-02T00:00:00",
    )

    result = recurring_svc.process_items([ghost, recurring_svc.get_by_id(good.id)], NOW)

    assert [o.id for o in result.processed] == [good.id]
    assert [(f.id, f.description) for f in result.failures] == [(999, "Ghost")]
    txs = ledger.list_transactions(USER)
    assert [tx.recurring_item_id for tx in txs] == [good.id]


def test_concurrent_runs_do_not_duplicate(recurring_svc, ledger):
    item = _add(recurring_svc)
    first_reader = recurring_svc.get_active(USER)
    second_reader = copy.deepcopy(first_reader)

    first = recurring_svc.process_items(first_reader, NOW)
    second = recurring_svc.process_items(second_reader, NOW)

    assert len(first.processed) == 1
    assert second.processed == []
    assert [f.id for f in second.failures] == [item.id]
    assert len(ledger.list_transactions(USER)) == 1
    assert recurring_svc.get_by_id(item.id).next_due_date == "2024-03-16T09:30:00"


def test_processing_updates_the_passed_item(recurring_svc):
    _add(recurring_svc)
    items = recurring_svc.get_active(USER)
    recurring_svc.process_items(items, NOW)
    assert items[0].last_processed == "2024-03-15T09:30:00"
    assert recurring_svc.process_items(items, NOW).processed == []


def test_history_lists_materialized_transactions(recurring_svc):
    item = _add(recurring_svc)
    recurring_svc.process_due_items(USER, NOW)
    recurring_svc.process_due_items(USER, datetime(2024, 3, 16, 7, 0))
    assert [tx.date for tx in recurring_svc.history(item.id)] == [
        "2024-03-15T09:30:00",
        "2024-03-16T07:00:00",
    ]


def test_monthly_series_from_month_end(recurring_svc):
    item = _add(recurring_svc, frequency="monthly", start_date="2024-01-31")

    assert recurring_svc.process_due_items(USER, datetime(2024, 2, 28)).processed == []
    recurring_svc.process_due_items(USER, datetime(2024, 2, 29))
    assert recurring_svc.get_by_id(item.id).next_due_date == "2024-03-29T00:00:00"
    recurring_svc.process_due_items(USER, datetime(2024, 3, 29))
    assert recurring_svc.get_by_id(item.id).next_due_date == "2024-04-29T00:00:00"


def test_other_users_items_are_untouched(recurring_svc, ledger):
    _add(recurring_svc, user_id="user-2")
    assert recurring_svc.process_due_items(USER, NOW).processed == []
    assert ledger.list_transactions("user-2") == []


def test_failed_append_leaves_item_unchanged(recurring_svc, ledger, tx_dao, monkeypatch):
    item = _add(recurring_svc)

    def broken_create(*args, **kwargs):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(tx_dao, "create", broken_create)
    result = recurring_svc.process_due_items(USER, NOW)

    assert result.processed == []
    assert [f.id for f in result.failures] == [item.id]
    stored = recurring_svc.get_by_id(item.id)
    assert stored.next_due_date == item.next_due_date
    assert stored.last_processed is None
    assert ledger.list_transactions(USER) == []


def test_aware_now_is_stored_as_local_time(recurring_svc, ledger):
    item = _add(recurring_svc)
    recurring_svc.process_due_items(USER, NOW.astimezone())
    assert [tx.date for tx in ledger.list_transactions(USER)] == ["2024-03-15T09:30:00"]
    assert recurring_svc.get_by_id(item.id).next_due_date == "2024-03-16T09:30:00"


def test_storage_failures_surface_as_persistence_error(db, recurring_svc):
    item = _add(recurring_svc)
    db.get_connection().execute("DROP TABLE recurring_items")
    with pytest.raises(PersistenceError):
        _add(recurring_svc)
    with pytest.raises(PersistenceError):
        recurring_svc.get_all(USER)
    with pytest.raises(PersistenceError):
        recurring_svc.update(item.id, amount=40)
    with pytest.raises(PersistenceError):
        recurring_svc.delete(item.id)
