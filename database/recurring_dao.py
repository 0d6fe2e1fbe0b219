from typing import Optional
from database.db_manager import DatabaseManager, persistence_errors
from models.recurring_item import Frequency, RecurringItem

UPDATABLE_FIELDS = (
    "description", "amount", "category", "currency", "frequency",
    "start_date", "end_date", "active", "last_processed", "next_due_date",
)


class RecurringDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> RecurringItem:
        return RecurringItem(
            id=row["id"],
            user_id=row["user_id"],
            description=row["description"],
            amount=row["amount"],
            category=row["category"],
            currency=row["currency"],
            frequency=Frequency(row["frequency"]),
            start_date=row["start_date"],
            next_due_date=row["next_due_date"],
            active=bool(row["active"]),
            end_date=row["end_date"],
            last_processed=row["last_processed"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @persistence_errors
    def get_all(self, user_id: str) -> list[RecurringItem]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM recurring_items WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    @persistence_errors
    def get_active(self, user_id: str) -> list[RecurringItem]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM recurring_items WHERE user_id = ? AND active = 1 ORDER BY id",
            (user_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    @persistence_errors
    def get_by_id(self, item_id: int) -> Optional[RecurringItem]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM recurring_items WHERE id = ?", (item_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    @persistence_errors
    def create(
        self,
        user_id: str,
        description: str,
        amount: float,
        category: str,
        currency: str,
        frequency: Frequency,
        start_date: str,
        next_due_date: str,
        end_date: str | None = None,
    ) -> RecurringItem:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """INSERT INTO recurring_items
               (user_id, description, amount, category, currency, frequency,
                start_date, end_date, active, last_processed, next_due_date)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, NULL, ?)""",
            (
                user_id, description, amount, category, currency,
                Frequency(frequency).value, start_date, end_date, next_due_date,
            ),
        )
        self._db.commit()
        return self.get_by_id(cursor.lastrowid)

    @persistence_errors
    def update_fields(
        self,
        item_id: int,
        fields: dict,
        expected_next_due: str | None = None,
    ) -> int:
        """Partial update. Returns the number of rows changed.

        With expected_next_due set, the row only changes if its stored
        next_due_date still equals that value.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise KeyError(f"Unknown recurring item fields: {sorted(unknown)}")
        values = dict(fields)
        if "frequency" in values:
            values["frequency"] = Frequency(values["frequency"]).value
        if "active" in values:
            values["active"] = 1 if values["active"] else 0

        assignments = [f"{name}=?" for name in values] + ["updated_at=datetime('now')"]
        sql = f"UPDATE recurring_items SET {', '.join(assignments)} WHERE id=?"
        params: list = list(values.values()) + [item_id]
        if expected_next_due is not None:
            sql += " AND next_due_date=?"
            params.append(expected_next_due)

        conn = self._db.get_connection()
        cursor = conn.execute(sql, params)
        self._db.commit()
        return cursor.rowcount

    @persistence_errors
    def delete(self, item_id: int) -> int:
        conn = self._db.get_connection()
        cursor = conn.execute("DELETE FROM recurring_items WHERE id = ?", (item_id,))
        self._db.commit()
        return cursor.rowcount
