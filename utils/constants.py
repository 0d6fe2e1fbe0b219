APP_NAME = "Expense Cadence"
DB_FILE = "expense_cadence.db"

EXPENSE_CATEGORIES = [
    "Food",
    "Transportation",
    "Entertainment",
    "Shopping",
    "Utilities",
    "Housing",
    "Healthcare",
    "Other",
]

BUDGET_PERIODS = ["weekly", "monthly", "yearly"]

# Budget alert tiers, in percent of the limit
BUDGET_APPROACHING_PCT = 70.0
BUDGET_REACHED_PCT = 90.0
BUDGET_DISPLAY_CAP_PCT = 100.0

TIER_OK = "ok"
TIER_APPROACHING = "approaching"
TIER_REACHED = "reached"

TIER_LABELS = {
    TIER_OK: "",
    TIER_APPROACHING: "Approaching limit",
    TIER_REACHED: "Limit reached",
}
