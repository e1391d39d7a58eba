"""Month-key helpers for the ``Mon-YY`` date axis (e.g. ``Aug-25``)."""

from __future__ import annotations

from datetime import date
from typing import Iterable

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_INDEX = {m: i + 1 for i, m in enumerate(MONTH_ABBR)}

DEFAULT_MONTH = "Jan-26"


def parse_month(key: str) -> date | None:
    """Parse ``Aug-25`` into ``date(2025, 8, 1)``.

    Two-digit years are taken as 20YY. Returns ``None`` for anything that is
    not a three-letter month abbreviation, a hyphen and a two-digit year.
    """
    if not key:
        return None
    month, sep, year = key.strip().partition("-")
    if not sep or month not in _MONTH_INDEX or len(year) != 2 or not year.isdigit():
        return None
    return date(2000 + int(year), _MONTH_INDEX[month], 1)


def format_month(d: date) -> str:
    return f"{MONTH_ABBR[d.month - 1]}-{d.year % 100:02d}"


def sort_month_keys(keys: Iterable[str]) -> list[str]:
    """Sort month keys chronologically.

    Keys that do not parse go last, in lexical order, so a stray value in
    the date column never breaks the axis.
    """
    def _key(k: str) -> tuple[int, date, str]:
        d = parse_month(k)
        if d is None:
            return (1, date.min, k)
        return (0, d, k)

    return sorted(keys, key=_key)


def month_options(end: str = DEFAULT_MONTH, count: int = 12) -> list[str]:
    """Return `count` consecutive month keys ending at `end`, oldest first.

    Raises:
        ValueError: if `end` is not a valid month key.
    """
    d = parse_month(end)
    if d is None:
        raise ValueError(f"Invalid month key: {end!r}")
    out: list[str] = []
    y, m = d.year, d.month
    for _ in range(count):
        out.append(format_month(date(y, m, 1)))
        m -= 1
        if m == 0:
            y, m = y - 1, 12
    return list(reversed(out))


DEFAULT_MONTHS = month_options()
