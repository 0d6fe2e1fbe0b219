from dataclasses import dataclass
from typing import Optional


@dataclass
class Transaction:
    id: Optional[int]
    user_id: str
    description: str
    amount: float
    category: str
    currency: str
    date: str                   # ISO-8601 date-time
    recurring_item_id: Optional[int] = None   # set when materialized from a recurring item
    created_at: str = ""
    updated_at: str = ""
