"""Month/year expiry arithmetic.

Medicine packs print their expiry as ``MM/YYYY``. Every comparison here
normalizes that value to the first day of the month, so a pack marked
``06/2024`` is treated as expired from 2024-06-01 onward.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .errors import InvalidFormat

CRITICAL_DAYS = 30
WARNING_DAYS = 90
DEFAULT_EXPIRING_SOON_DAYS = 60

UNKNOWN = "unknown"
EXPIRED = "expired"
CRITICAL = "critical"
WARNING = "warning"
GOOD = "good"

_MONTH_YEAR_RE = re.compile(r"^(\d{2})/(\d{4})$")


@dataclass(frozen=True, order=True)
class MonthYear:
    """A calendar month. Field order gives (year, month) ordering."""

    year: int
    month: int

    def __str__(self) -> str:
        return f"{self.month:02d}/{self.year:04d}"

    def first_day(self) -> date:
        return to_first_of_month(self)


@dataclass(frozen=True)
class ExpiryStatus:
    status: str  # unknown / expired / critical / warning / good
    description: str
    days: int | None = None


def to_first_of_month(value: MonthYear) -> date:
    """Return the first calendar day of *value*.

    Raises:
        InvalidFormat: If the month is outside 1-12 or the year is not positive.
    """
    if not isinstance(value.month, int) or not 1 <= value.month <= 12:
        raise InvalidFormat(f"month must be 1-12, got {value.month!r}")
    if not isinstance(value.year, int) or value.year < 1:
        raise InvalidFormat(f"year must be a positive integer, got {value.year!r}")
    return date(value.year, value.month, 1)


def parse_strict(text: str) -> MonthYear:
    """Parse ``MM/YYYY`` text, raising InvalidFormat on anything else."""
    if not isinstance(text, str):
        raise InvalidFormat(f"expected MM/YYYY text, got {type(text).__name__}")
    m = _MONTH_YEAR_RE.match(text.strip())
    if m is None:
        raise InvalidFormat(f"expected MM/YYYY, got {text!r}")
    value = MonthYear(year=int(m.group(2)), month=int(m.group(1)))
    to_first_of_month(value)
    return value


def parse(text: str | None) -> MonthYear | None:
    """Parse ``MM/YYYY`` text. Returns None for empty or malformed input."""
    if not text:
        return None
    try:
        return parse_strict(text)
    except InvalidFormat:
        return None


def format_month_year(value: MonthYear | date) -> str:
    """Render a MonthYear (or any date) in canonical ``MM/YYYY`` form."""
    if isinstance(value, MonthYear):
        return str(value)
    return f"{value.month:02d}/{value.year:04d}"


def _reference_instant(reference: date | datetime | None) -> datetime:
    if reference is None:
        return datetime.now()
    if isinstance(reference, datetime):
        return reference
    return datetime(reference.year, reference.month, reference.day)


def _expiry_instant(text: str | None) -> datetime | None:
    value = parse(text)
    if value is None:
        return None
    first = value.first_day()
    return datetime(first.year, first.month, first.day)


def is_expired(text: str | None, reference: date | datetime | None = None) -> bool:
    """True if the expiry month has started as of *reference* (default: today).

    Judged at month granularity: a pack expiring in the current month is
    already expired.
    """
    expiry = _expiry_instant(text)
    if expiry is None:
        return False
    now = _reference_instant(reference)
    return expiry <= datetime(now.year, now.month, 1)


def days_until_expiry(
    text: str | None, reference: date | datetime | None = None
) -> int | None:
    """Signed days from *reference* to the expiry month-start, rounded up."""
    expiry = _expiry_instant(text)
    if expiry is None:
        return None
    diff = expiry - _reference_instant(reference)
    return math.ceil(diff.total_seconds() / 86400)


def is_expiring_soon(
    text: str | None,
    threshold_days: int = DEFAULT_EXPIRING_SOON_DAYS,
    reference: date | datetime | None = None,
) -> bool:
    """True if not yet expired and the expiry month starts within *threshold_days*.

    Unlike is_expired, the window is measured from the reference instant
    itself rather than from the start of its month.
    """
    expiry = _expiry_instant(text)
    if expiry is None:
        return False
    if is_expired(text, reference):
        return False
    limit = _reference_instant(reference) + timedelta(days=threshold_days)
    return expiry <= limit


def classify(text: str | None, reference: date | datetime | None = None) -> ExpiryStatus:
    """Classify an expiry date for display."""
    if not text or parse(text) is None:
        return ExpiryStatus(UNKNOWN, "No expiry date")

    days = days_until_expiry(text, reference)
    if is_expired(text, reference):
        return ExpiryStatus(EXPIRED, "Expired", days)
    if days <= CRITICAL_DAYS:
        return ExpiryStatus(CRITICAL, f"Expires in {days} days", days)
    if days <= WARNING_DAYS:
        return ExpiryStatus(WARNING, f"Expires in {days // 30} months", days)
    return ExpiryStatus(GOOD, f"Expires in {days // 30} months", days)
