"""Input checks shared by the services. Each raises ValidationError on failure."""
import re
from datetime import datetime
from utils.constants import EXPENSE_CATEGORIES
from utils.date_helpers import parse_timestamp
from utils.errors import ValidationError

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def require_text(value, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} cannot be empty.")
    return str(value).strip()


def require_positive_amount(amount, field_name: str = "Amount") -> float:
    if amount is None:
        raise ValidationError(f"{field_name} is required.")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number.") from None
    if value <= 0:
        raise ValidationError(f"{field_name} must be positive.")
    return value


def require_currency(code) -> str:
    if not code or not _CURRENCY_RE.match(str(code)):
        raise ValidationError(f"Invalid currency code: {code!r}")
    return str(code)


def require_category(category) -> str:
    if category not in EXPENSE_CATEGORIES:
        raise ValidationError(f"Unknown category: {category!r}")
    return category


def require_timestamp(value, field_name: str = "Date") -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"{field_name} is not a valid ISO-8601 date: {value!r}")
    return parsed


def require_choice(value, enum_cls, field_name: str):
    """Coerce value into enum_cls, e.g. Frequency("monthly")."""
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from None


def require_int_range(value, lo: int, hi: int, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number.") from None
    if not lo <= number <= hi:
        raise ValidationError(f"{field_name} must be between {lo} and {hi}.")
    return number
