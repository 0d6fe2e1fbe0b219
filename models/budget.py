from dataclasses import dataclass


@dataclass
class Budget:
    id: int
    user_id: str
    category: str
    amount: float
    period: str         # 'weekly' | 'monthly' | 'yearly'
    currency: str
    created_at: str = ""
    updated_at: str = ""


@dataclass
class CategoryProgress:
    category: str
    budget_amount: float
    spent_amount: float
    percentage: float           # uncapped, drives the alert tier
    display_percentage: float   # capped at 100 for progress bars
    tier: str

    @property
    def remaining(self) -> float:
        return max(0.0, self.budget_amount - self.spent_amount)
