"""Expiry classification of food items.

Both dates are compared at day resolution: the time of day of either input
never changes the result. An item expiring today counts as expired.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime

WARNING_DAYS = 3


class ExpiryTier(enum.StrEnum):
    EXPIRED = "expired"
    WARNING = "warning"
    GOOD = "good"


@dataclass(frozen=True)
class ExpiryStatus:
    diff_days: int
    status: ExpiryTier
    message: str


def _as_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def days_until(expiry: date | datetime | str, today: date | datetime | None = None) -> int:
    """Whole days from ``today`` (local date by default) to ``expiry``."""
    return (_as_date(expiry) - _as_date(today or date.today())).days


def classify_expiry(expiry: date | datetime | str, today: date | datetime | None = None) -> ExpiryStatus:
    diff_days = days_until(expiry, today)
    if diff_days <= 0:
        return ExpiryStatus(diff_days, ExpiryTier.EXPIRED, f"Expired {abs(diff_days)} days ago")
    if diff_days <= WARNING_DAYS:
        return ExpiryStatus(diff_days, ExpiryTier.WARNING, f"Expires in {diff_days} days")
    return ExpiryStatus(diff_days, ExpiryTier.GOOD, f"Expires in {diff_days} days")
