import logging
import math
from datetime import date, datetime, timedelta
from database.ledger import Ledger
from models.income_profile import IncomeProfile, PaymentFrequency
from utils.date_helpers import (
    add_months, clamp_day_to_month, day_has_passed, format_timestamp, last_day_of_month,
    parse_timestamp, resolve_now, start_of_day, to_day,
)
from utils.errors import StaleStateError
from utils.validators import (
    require_choice, require_currency, require_int_range, require_positive_amount,
    require_timestamp,
)

logger = logging.getLogger(__name__)

PAY_INTERVAL_DAYS = {
    PaymentFrequency.WEEKLY: 7,
    PaymentFrequency.BIWEEKLY: 14,
}


def compute_next_payment_date(
    frequency: PaymentFrequency,
    credit_day: int | None,
    last_payment_date: str | None,
    now: datetime,
) -> datetime:
    frequency = PaymentFrequency(frequency)
    if frequency.is_day_of_month:
        if credit_day is None:
            return start_of_day(last_day_of_month(now))
        if day_has_passed(credit_day, now):
            month = add_months(date(now.year, now.month, 1), 1)
        else:
            month = date(now.year, now.month, 1)
        day = clamp_day_to_month(month.year, month.month, credit_day)
        return datetime(month.year, month.month, day)
    if frequency in PAY_INTERVAL_DAYS:
        base = parse_timestamp(last_payment_date) or now
        return base + timedelta(days=PAY_INTERVAL_DAYS[frequency])
    raise ValueError(f"Unhandled payment frequency: {frequency}")


def _ensure_fresh(profile: IncomeProfile, today: date):
    stored = parse_timestamp(profile.next_payment_date)
    if stored is None or stored.date() < today:
        raise StaleStateError(profile.next_payment_date or "")


def current_payday(profile: IncomeProfile, now: datetime) -> tuple[str, str | None]:
    """Return (next_payment_date, last_payment_date) as they should be stored.

    A stored payday already on or after today is returned unchanged. A
    weekly/biweekly cycle re-anchors on the missed payday rather than on
    today, stepping forward until the payday is no longer in the past.
    """
    now = resolve_now(now)
    try:
        _ensure_fresh(profile, to_day(now))
        return profile.next_payment_date, profile.last_payment_date
    except StaleStateError as stale:
        frequency = PaymentFrequency(profile.payment_frequency)
        last = profile.last_payment_date
        if frequency in PAY_INTERVAL_DAYS and stale.stale_value:
            last = stale.stale_value
        nxt = compute_next_payment_date(frequency, profile.credit_day, last, now)
        while frequency in PAY_INTERVAL_DAYS and nxt.date() < to_day(now):
            last = format_timestamp(nxt)
            nxt = compute_next_payment_date(frequency, profile.credit_day, last, now)
        return format_timestamp(nxt), last


def days_until_payday(next_payment_date: str | None, now: datetime) -> int:
    """Whole days until payday, rounded up, never negative."""
    now = resolve_now(now)
    payday = parse_timestamp(next_payment_date)
    if payday is None:
        return 0
    days = math.ceil((payday - now).total_seconds() / 86400)
    return max(0, days)


class IncomeService:
    def __init__(self, ledger: Ledger):
        self._ledger = ledger

    def get_income(self, user_id: str, now: datetime | None = None) -> IncomeProfile | None:
        """Read the profile, correcting and persisting a lapsed payday first."""
        ref = resolve_now(now)
        profile = self._ledger.get_income_profile(user_id)
        if profile is None:
            return None
        next_payment, last_payment = current_payday(profile, ref)
        if (next_payment, last_payment) != (profile.next_payment_date, profile.last_payment_date):
            logger.info(
                "Recalculating next payment date for %s: %s -> %s",
                user_id, profile.next_payment_date, next_payment,
            )
            profile.next_payment_date = next_payment
            profile.last_payment_date = last_payment
            self._ledger.put_income_profile(user_id, profile)
        return profile

    def save_income(
        self,
        user_id: str,
        amount: float,
        currency: str,
        payment_frequency: str = PaymentFrequency.MONTHLY,
        credit_day: int | None = None,
        last_payment_date: str | None = None,
        now: datetime | None = None,
    ) -> IncomeProfile:
        ref = resolve_now(now)
        frequency = require_choice(payment_frequency, PaymentFrequency, "payment frequency")
        if credit_day is not None:
            credit_day = require_int_range(credit_day, 1, 31, "Credit day")
        if last_payment_date:
            last_payment_date = format_timestamp(require_timestamp(last_payment_date, "Last payment date"))
        elif frequency in PAY_INTERVAL_DAYS:
            last_payment_date = format_timestamp(ref)

        profile = IncomeProfile(
            user_id=user_id,
            amount=require_positive_amount(amount, "Income"),
            currency=require_currency(currency),
            payment_frequency=frequency,
            credit_day=credit_day,
            last_payment_date=last_payment_date,
            next_payment_date=format_timestamp(
                compute_next_payment_date(frequency, credit_day, last_payment_date, ref)
            ),
        )
        self._ledger.put_income_profile(user_id, profile)
        logger.info("Saved income for %s, next payday %s", user_id, profile.next_payment_date)
        return self.get_income(user_id, ref)

    def days_until_payday(self, user_id: str, now: datetime | None = None) -> int:
        ref = resolve_now(now)
        profile = self.get_income(user_id, ref)
        if profile is None:
            return 0
        return days_until_payday(profile.next_payment_date, ref)

    def available_balance(
        self, user_id: str, display_currency: str, now: datetime | None = None
    ) -> float | None:
        """Income amount, or None when shown in a currency other than the income's."""
        profile = self.get_income(user_id, now)
        if profile is None or profile.currency != display_currency:
            return None
        return profile.amount
