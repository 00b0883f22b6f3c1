"""Norwegian public holiday calendar."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta


def easter_sunday(year: int) -> date:
    """Return Easter Sunday for a Gregorian year (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    weekday_shift = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * weekday_shift) // 451
    month, day = divmod(h + weekday_shift - 7 * m + 114, 31)
    return date(year, month, day + 1)


def norwegian_holidays(year: int) -> dict[date, str]:
    """Return all Norwegian public holidays for a year, keyed by date."""
    easter = easter_sunday(year)
    return {
        date(year, 1, 1): "New Year's Day",
        easter - timedelta(days=3): "Maundy Thursday",
        easter - timedelta(days=2): "Good Friday",
        easter: "Easter Sunday",
        easter + timedelta(days=1): "Easter Monday",
        date(year, 5, 1): "Labour Day",
        date(year, 5, 17): "Constitution Day",
        easter + timedelta(days=39): "Ascension Day",
        easter + timedelta(days=49): "Whit Sunday",
        easter + timedelta(days=50): "Whit Monday",
        date(year, 12, 25): "Christmas Day",
        date(year, 12, 26): "Boxing Day",
    }


def holidays_between(
    start: date, end: date, extra: Iterable[date] = ()
) -> frozenset[date]:
    """Holiday dates within [start, end], plus any extra configured dates in range."""
    days: set[date] = set()
    for year in range(start.year, end.year + 1):
        days.update(d for d in norwegian_holidays(year) if start <= d <= end)
    days.update(d for d in extra if start <= d <= end)
    return frozenset(days)
