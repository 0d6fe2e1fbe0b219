from typing import Optional
from database.db_manager import DatabaseManager, persistence_errors
from models.income_profile import IncomeProfile, PaymentFrequency


class IncomeDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> IncomeProfile:
        return IncomeProfile(
            user_id=row["user_id"],
            amount=row["amount"],
            currency=row["currency"],
            payment_frequency=PaymentFrequency(row["payment_frequency"]),
            credit_day=row["credit_day"],
            last_payment_date=row["last_payment_date"],
            next_payment_date=row["next_payment_date"],
            updated_at=row["updated_at"],
        )

    @persistence_errors
    def get(self, user_id: str) -> Optional[IncomeProfile]:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM income_profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    @persistence_errors
    def upsert(self, profile: IncomeProfile) -> IncomeProfile:
        conn = self._db.get_connection()
        conn.execute(
            """INSERT INTO income_profiles
               (user_id, amount, currency, payment_frequency, credit_day,
                last_payment_date, next_payment_date, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, datetime('now'))
               ON CONFLICT(user_id) DO UPDATE SET
                   amount = excluded.amount,
                   currency = excluded.currency,
                   payment_frequency = excluded.payment_frequency,
                   credit_day = excluded.credit_day,
                   last_payment_date = excluded.last_payment_date,
                   next_payment_date = excluded.next_payment_date,
                   updated_at = excluded.updated_at""",
            (
                profile.user_id, profile.amount, profile.currency,
                PaymentFrequency(profile.payment_frequency).value, profile.credit_day,
                profile.last_payment_date, profile.next_payment_date,
            ),
        )
        self._db.commit()
        return self.get(profile.user_id)

