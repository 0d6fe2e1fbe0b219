from typing import Optional
from database.db_manager import DatabaseManager, persistence_errors
from models.budget import Budget

UPDATABLE_FIELDS = ("category", "amount", "period", "currency")


class BudgetDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Budget:
        return Budget(
            id=row["id"],
            user_id=row["user_id"],
            category=row["category"],
            amount=row["amount"],
            period=row["period"],
            currency=row["currency"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @persistence_errors
    def get_by_user(self, user_id: str) -> list[Budget]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM budgets WHERE user_id = ? ORDER BY category, id",
            (user_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    @persistence_errors
    def get_by_id(self, budget_id: int) -> Optional[Budget]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM budgets WHERE id = ?", (budget_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    @persistence_errors
    def create(
        self, user_id: str, category: str, amount: float, period: str, currency: str
    ) -> Budget:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO budgets(user_id, category, amount, period, currency)
               VALUES (?, ?, ?, ?, ?)""",
            (user_id, category, amount, period, currency),
        )
        self._db.commit()
        return self.get_by_id(cursor.lastrowid)

    @persistence_errors
    def update_fields(self, budget_id: int, fields: dict) -> int:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise KeyError(f"Unknown budget fields: {sorted(unknown)}")
        assignments = [f"{name}=?" for name in fields] + ["updated_at=datetime('now')"]
        conn = self._db.get_connection()
        cursor = conn.execute(
            f"UPDATE budgets SET {', '.join(assignments)} WHERE id=?",
            list(fields.values()) + [budget_id],
        )
        self._db.commit()
        return cursor.rowcount

    @persistence_errors
    def delete(self, budget_id: int) -> int:
        conn = self._db.get_connection()
        cursor = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        self._db.commit()
        return cursor.rowcount
