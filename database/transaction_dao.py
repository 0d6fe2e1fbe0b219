from typing import Optional
from database.db_manager import DatabaseManager, persistence_errors
from models.transaction import Transaction


class TransactionDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            description=row["description"],
            amount=row["amount"],
            category=row["category"],
            currency=row["currency"],
            date=row["date"],
            recurring_item_id=row["recurring_item_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @persistence_errors
    def get_by_user(self, user_id: str) -> list[Transaction]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM transactions WHERE user_id = ? ORDER BY date DESC, id DESC",
            (user_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    @persistence_errors
    def get_by_id(self, tx_id: int) -> Optional[Transaction]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ?", (tx_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    @persistence_errors
    def get_by_recurring_item(self, item_id: int) -> list[Transaction]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM transactions WHERE recurring_item_id = ? ORDER BY date, id",
            (item_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    @persistence_errors
    def create(
        self,
        user_id: str,
        description: str,
        amount: float,
        category: str,
        currency: str,
        date: str,
        recurring_item_id: int | None = None,
    ) -> Transaction:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO transactions
               (user_id, description, amount, category, currency, date, recurring_item_id)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (user_id, description, amount, category, currency, date, recurring_item_id),
        )
        self._db.commit()
        return self.get_by_id(cursor.lastrowid)

    @persistence_errors
    def update(
        self,
        tx_id: int,
        description: str,
        amount: float,
        category: str,
        currency: str,
        date: str,
    ) -> Optional[Transaction]:
        conn = self._db.get_connection()
        conn.execute(
            """UPDATE transactions SET
               description=?, amount=?, category=?, currency=?, date=?,
               updated_at=datetime('now')
               WHERE id=?""",
            (description, amount, category, currency, date, tx_id),
        )
        self._db.commit()
        return self.get_by_id(tx_id)

    @persistence_errors
    def delete(self, tx_id: int) -> int:
        conn = self._db.get_connection()
        cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))
        self._db.commit()
        return cursor.rowcount
