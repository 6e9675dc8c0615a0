"""
Period ladders

A period ladder is the ordered list of period keys an obligation can
settle. Monthly obligations use "YYYY-MM" keys; certificates use the ISO
date of each payout.

Months are added by calendar month and clamped to the month's last day
(Jan 31 + 1 month = Feb 28/29). Every step is computed from the start
date, never from the previous step, so clamping does not drift.
"""

import calendar
from datetime import date
from typing import Optional


def add_months(start: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping the day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def period_key(day: date) -> str:
    """Monthly period key for a date."""
    return f"{day.year:04d}-{day.month:02d}"


def current_period_key(today: Optional[date] = None) -> str:
    return period_key(today or date.today())


def parse_period_key(key: str) -> date:
    """First day of the month a "YYYY-MM" key names."""
    year, month = key.split("-")[:2]
    return date(int(year), int(month), 1)


def monthly_ladder(start: date, count: int) -> list[str]:
    """`count` consecutive monthly keys starting at start's month."""
    return [period_key(add_months(start, i)) for i in range(max(count, 0))]


def open_monthly_ladder(start: date, today: Optional[date] = None) -> list[str]:
    """
    Monthly keys from start's month up to and including today's month.

    Used for unbounded recurrences, which have no precomputed end.
    """
    today = today or date.today()
    first = date(start.year, start.month, 1)
    months = (today.year - first.year) * 12 + (today.month - first.month)
    return monthly_ladder(first, months + 1)


def cycle_ladder(start: date, end: date, cycle_months: int) -> list[str]:
    """
    ISO date keys of every cycle boundary after start, up to end.

    The first key is one cycle after start; start itself is never a key.
    """
    if cycle_months < 1:
        raise ValueError("cycle_months must be at least 1")

    keys = []
    step = 1
    current = add_months(start, cycle_months)
    while current <= end:
        keys.append(current.isoformat())
        step += 1
        current = add_months(start, cycle_months * step)
    return keys


def first_unpaid(ladder: list[str], paid: list[str]) -> Optional[str]:
    """First ladder key not in the paid-set, in ladder order."""
    settled = set(paid)
    for key in ladder:
        if key not in settled:
            return key
    return None


def period_label(key: str) -> str:
    """Short display label ("Feb 2024") for a monthly or ISO date key."""
    try:
        if len(key) == 7:
            day = parse_period_key(key)
        else:
            day = date.fromisoformat(key[:10])
    except ValueError:
        return key
    return day.strftime("%b %Y")
