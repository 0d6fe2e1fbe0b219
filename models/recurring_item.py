from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass
class RecurringItem:
    id: int
    user_id: str
    description: str
    amount: float
    category: str
    currency: str               # ISO 4217
    frequency: Frequency
    start_date: str             # ISO-8601
    next_due_date: str          # ISO-8601
    active: bool = True
    end_date: Optional[str] = None
    last_processed: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
