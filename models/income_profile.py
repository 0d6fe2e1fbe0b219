from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    SPECIFIC_DATE = "specific-date"
    BIWEEKLY = "biweekly"
    WEEKLY = "weekly"

    @property
    def is_day_of_month(self) -> bool:
        return self in (PaymentFrequency.MONTHLY, PaymentFrequency.SPECIFIC_DATE)


@dataclass
class IncomeProfile:
    user_id: str
    amount: float
    currency: str
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    credit_day: Optional[int] = None          # 1-31, monthly / specific-date only
    last_payment_date: Optional[str] = None   # weekly / biweekly only
    next_payment_date: Optional[str] = None   # derived, cached
    updated_at: str = ""
