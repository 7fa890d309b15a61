"""
periods.py — Reporting granularities and date sequences.

Every metric series is anchored on "today": the sequence steps backward one
unit of the granularity at a time and is then reversed, so the last date is
always today and dates are strictly ascending.
"""

from datetime import date

import pandas as pd

GRANULARITIES = ("daily", "weekly", "monthly", "quarterly", "annually")

DEFAULT_GRANULARITY = "monthly"

# Period length relative to one month
PERIOD_MULTIPLIERS = {
    "daily":     1 / 30,
    "weekly":    7 / 30,
    "monthly":   1,
    "quarterly": 3,
    "annually":  12,
}

_STEPS = {
    "daily":     pd.DateOffset(days=1),
    "weekly":    pd.DateOffset(weeks=1),
    "monthly":   pd.DateOffset(months=1),
    "quarterly": pd.DateOffset(months=3),
    "annually":  pd.DateOffset(years=1),
}


def validate_granularity(granularity: str) -> str:
    if granularity not in PERIOD_MULTIPLIERS:
        raise ValueError(
            f"Unknown granularity {granularity!r}; expected one of {', '.join(GRANULARITIES)}"
        )
    return granularity


def period_multiplier(granularity: str) -> float:
    return PERIOD_MULTIPLIERS[validate_granularity(granularity)]


def quarter_index(day: date) -> int:
    """0-based quarter of the year (Jan-Mar = 0)."""
    return (day.month - 1) // 3


def time_progress(index: int, count: int) -> float:
    """Position of a record within its series, in [0, 1)."""
    if count <= 0:
        return 0.0
    return index / count


def generate_dates(
    granularity: str,
    count: int,
    today: date | None = None,
) -> list[date]:
    """Return `count` ascending calendar dates ending at today.

    Month-based steps clamp to the end of shorter months
    (31 Mar -> 28/29 Feb).

    Args:
        granularity: One of GRANULARITIES.
        count: Number of dates.
        today: Anchor date; defaults to date.today().

    Returns:
        List of dates, oldest first.
    """
    step = _STEPS[validate_granularity(granularity)]
    anchor = today or date.today()

    current = pd.Timestamp(anchor)
    result = []
    for _ in range(max(0, count)):
        result.append(current.date())
        current = current - step
    return list(reversed(result))
