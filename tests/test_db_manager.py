import sqlite3

import pytest

from conftest import USER


class CommitFails:
    """Connection stand-in whose commit always fails."""

    def __init__(self, conn):
        self._conn = conn
        self.rolled_back = False

    def commit(self):
        raise sqlite3.OperationalError("database is locked")

    def rollback(self):
        self.rolled_back = True
        self._conn.rollback()

    def __getattr__(self, name):
        return getattr(self._conn, name)


def test_transaction_commits_on_exit(db, tx_dao):
    with db.transaction():
        tx_dao.create(USER, "Rent", 900, "Housing", "USD", "2024-03-01T00:00:00")
    db.get_connection().rollback()
    assert len(tx_dao.get_by_user(USER)) == 1


def test_transaction_rolls_back_on_error(db, tx_dao):
    with pytest.raises(RuntimeError):
        with db.transaction():
            tx_dao.create(USER, "Rent", 900, "Housing", "USD", "2024-03-01T00:00:00")
            raise RuntimeError("boom")
    assert tx_dao.get_by_user(USER) == []


def test_failed_commit_is_rolled_back(db, tx_dao):
    real = db.get_connection()
    db._conn = CommitFails(real)
    try:
        with pytest.raises(sqlite3.OperationalError):
            with db.transaction():
                tx_dao.create(USER, "Rent", 900, "Housing", "USD", "2024-03-01T00:00:00")
        assert db._conn.rolled_back
    finally:
        db._conn = real
    assert db._tx_depth == 0
    assert tx_dao.get_by_user(USER) == []
