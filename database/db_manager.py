import functools
import logging
import os
import sqlite3
from contextlib import contextmanager
from utils.constants import DB_FILE
from utils.errors import PersistenceError

logger = logging.getLogger(__name__)


def persistence_errors(method):
    """Re-raise sqlite3 failures from method as PersistenceError."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except sqlite3.Error as exc:
            raise PersistenceError(f"{method.__name__} failed: {exc}") from exc
    return wrapper


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None
        self._tx_depth = 0

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def initialize(self):
        """Create schema."""
        conn = self.get_connection()
        self._create_schema(conn)
        conn.commit()

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS recurring_items (
                id             INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id        TEXT NOT NULL,
                description    TEXT NOT NULL,
                amount         REAL NOT NULL CHECK(amount > 0),
                category       TEXT NOT NULL,
                currency       TEXT NOT NULL,
                frequency      TEXT NOT NULL CHECK(frequency IN
                                   ('daily','weekly','biweekly','monthly','yearly')),
                start_date     TEXT NOT NULL,
                end_date       TEXT,
                active         INTEGER NOT NULL DEFAULT 1,
                last_processed TEXT,
                next_due_date  TEXT NOT NULL,
                created_at     TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at     TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id                INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id           TEXT NOT NULL,
                description       TEXT NOT NULL DEFAULT '',
                amount            REAL NOT NULL CHECK(amount > 0),
                category          TEXT NOT NULL,
                currency          TEXT NOT NULL,
                date              TEXT NOT NULL,
                recurring_item_id INTEGER REFERENCES recurring_items(id) ON DELETE SET NULL,
                created_at        TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at        TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS budgets (
                id         INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id    TEXT NOT NULL,
                category   TEXT NOT NULL,
                amount     REAL NOT NULL CHECK(amount > 0),
                period     TEXT NOT NULL CHECK(period IN ('weekly','monthly','yearly')),
                currency   TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS income_profiles (
                user_id           TEXT PRIMARY KEY,
                amount            REAL NOT NULL,
                currency          TEXT NOT NULL,
                payment_frequency TEXT NOT NULL CHECK(payment_frequency IN
                                      ('monthly','specific-date','biweekly','weekly')),
                credit_day        INTEGER,
                last_payment_date TEXT,
                next_payment_date TEXT,
                updated_at        TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_recurring_items_user ON recurring_items(user_id, active);
            CREATE INDEX IF NOT EXISTS idx_transactions_user    ON transactions(user_id, date);
            CREATE INDEX IF NOT EXISTS idx_budgets_user         ON budgets(user_id);
        """)

    def commit(self):
        """Commit unless a unit of work is open; it commits on exit instead."""
        if self._tx_depth == 0:
            self.get_connection().commit()

    @contextmanager
    def transaction(self):
        """Group writes: all of them are committed on exit, or none on error."""
        conn = self.get_connection()
        outermost = self._tx_depth == 0
        self._tx_depth += 1
        try:
            yield conn
        except Exception:
            self._tx_depth -= 1
            if outermost:
                conn.rollback()
            raise
        else:
            self._tx_depth -= 1
            if outermost:
                try:
                    conn.commit()
                except Exception:
                    conn.rollback()
                    raise

    @staticmethod
    def open(db_folder: str | None = None) -> "DatabaseManager":
        """Startup factory: opens (creating if needed) the DB in db_folder or CWD."""
        db_path = os.path.join(db_folder, DB_FILE) if db_folder else DB_FILE
        if db_folder:
            os.makedirs(db_folder, exist_ok=True)
        db = DatabaseManager(db_path)
        try:
            db.initialize()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {db_path}: {exc}") from exc
        logger.info("Opened database %s", db_path)
        return db

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None
