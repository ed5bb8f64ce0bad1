"""
Money and duration primitives.

WHAT: Integer-cents and integer-minutes arithmetic for the billing engine.

WHY: Every stored amount is whole cents and every stored duration is whole
minutes. Floating point never touches currency: each conversion rounds
explicitly, half-up, through Decimal or integer arithmetic, so the same
inputs always bill the same amount.

HOW: Plain functions with no database or framework dependencies.
- billed_minutes: six-minute (tenth of an hour) round-up
- raw_minutes_between: elapsed seconds rounded up to whole minutes
- amount_cents: billed minutes x hourly rate, rounded half-up to cents
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

BILLING_INCREMENT_MINUTES = 6
MINUTES_PER_HOUR = 60
SECONDS_PER_MINUTE = 60


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the engine's only clock)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def billed_minutes(raw_minutes: Optional[int]) -> int:
    """
    Round raw minutes up to the next billing increment.

    1 bills as 6, 6 as 6, 7 as 12. Zero, negative or missing input bills 0.

    Args:
        raw_minutes: Unrounded minutes worked

    Returns:
        Billed minutes, a multiple of BILLING_INCREMENT_MINUTES
    """
    if not raw_minutes or raw_minutes <= 0:
        return 0
    return _ceil_div(int(raw_minutes), BILLING_INCREMENT_MINUTES) * BILLING_INCREMENT_MINUTES


def raw_minutes_between(
    started_at: Optional[datetime], ended_at: Optional[datetime]
) -> int:
    """
    Whole minutes between two instants, rounding any partial minute up.

    A timer stopped 10 minutes and 1 second after it started records 11
    minutes. Missing bounds or a non-positive interval give 0.
    """
    if started_at is None or ended_at is None:
        return 0
    delta = ended_at - started_at
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros <= 0:
        return 0
    return _ceil_div(micros, SECONDS_PER_MINUTE * 1_000_000)


def amount_cents(billed: Optional[int], rate_cents_per_hour: Optional[int]) -> int:
    """
    Amount in cents for billed minutes at an hourly rate.

    round_half_up(billed / 60 * rate). Either input zero or missing gives 0.

    Args:
        billed: Billed minutes
        rate_cents_per_hour: Hourly rate in cents

    Returns:
        Amount in whole cents
    """
    if not billed or not rate_cents_per_hour:
        return 0
    value = Decimal(int(billed)) * Decimal(int(rate_cents_per_hour)) / Decimal(MINUTES_PER_HOUR)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def dollars_to_cents(amount: Any) -> int:
    """
    Convert a dollar amount to whole cents, rounding half-up.

    Accepts Decimal, int or str; floats are converted through str so that
    125.5 becomes 12550 rather than a binary approximation.
    """
    if amount is None:
        return 0
    if isinstance(amount, float):
        amount = str(amount)
    cents = Decimal(amount) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(cents: Optional[int]) -> str:
    """Format integer cents as a dollar string, e.g. 123456 -> "$1,234.56"."""
    cents = int(cents or 0)
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{remainder:02d}"


def minutes_to_hours(minutes: Optional[int]) -> Decimal:
    """Minutes as decimal hours with two places (12 -> Decimal("0.20"))."""
    return (Decimal(int(minutes or 0)) / Decimal(MINUTES_PER_HOUR)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
