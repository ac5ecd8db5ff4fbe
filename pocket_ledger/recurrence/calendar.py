"""
Recurrence Calendar

Pure date arithmetic for recurring expenses. No state, no clock.

Month and year steps use dateutil's relativedelta, which clamps the day of
month to the last valid day of the target month:

    Jan 31 + 1 month  -> Feb 29 (leap year) / Feb 28
    Aug 31 + 6 months -> Feb 28
    Feb 29 + 1 year   -> Feb 28

The engine always steps from the previous occurrence, so a clamped date
becomes the anchor for the next step (Jan 31 -> Feb 28 -> Mar 28).
"""

from datetime import date
from typing import Iterator

from dateutil.relativedelta import relativedelta

from pocket_ledger.models.ledger import Repeatability


STEPS = {
    Repeatability.DAILY: relativedelta(days=1),
    Repeatability.WEEKLY: relativedelta(weeks=1),
    Repeatability.MONTHLY: relativedelta(months=1),
    Repeatability.BIMONTHLY: relativedelta(months=2),
    Repeatability.SEMIANNUAL: relativedelta(months=6),
    Repeatability.YEARLY: relativedelta(years=1),
}


def next_date(current: date, frequency: Repeatability) -> date:
    """
    Return the occurrence that follows `current` for `frequency`.

    Raises:
        ValueError: if frequency is NONE (a one-off expense has no next date)
    """
    step = STEPS.get(Repeatability.parse(frequency))
    if step is None:
        raise ValueError(f"No next date for non-recurring frequency: {frequency!r}")
    return current + step


def occurrences_between(
    start: date,
    frequency: Repeatability,
    until: date,
) -> Iterator[date]:
    """
    Yield every occurrence strictly after `start` and on or before `until`.

    Yields nothing when `until` is not after `start`.
    """
    current = next_date(start, frequency)
    while current <= until:
        yield current
        current = next_date(current, frequency)
