"""Pure calendar calculations, free of UI dependencies."""

from __future__ import annotations

import calendar
import locale
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%Y-%m-%d"
YEAR_SPAN = 40

_missing_locales: set[str] = set()


@dataclass(frozen=True)
class CalendarDate:
    """A picked date together with its formatted representation."""

    day: int
    month: int
    year: int
    formatted: str
    date: date

    @classmethod
    def from_date(cls, d: date, fmt: str = DEFAULT_FORMAT,
                  locale_name: str | None = None) -> "CalendarDate":
        if isinstance(d, datetime):
            d = d.date()
        return cls(day=d.day, month=d.month, year=d.year,
                   formatted=format_date(d, fmt, locale_name), date=d)


@dataclass(frozen=True)
class CalendarCell:
    """One slot of the month grid; ``day is None`` marks leading padding."""

    day: int | None = None
    month: int | None = None
    year: int | None = None
    enabled: bool = False
    today: bool = False
    selected: bool = False
    date: CalendarDate | None = None

    @property
    def is_padding(self) -> bool:
        return self.day is None


# ------------------------------------------------------------------
# Locale handling
# ------------------------------------------------------------------
def _locale_candidates(name: str) -> list[str]:
    tag = name.replace("-", "_")
    if "." in tag or tag in ("C", "POSIX"):
        return [tag]
    return [f"{tag}.UTF-8", f"{tag}.utf8", tag]


@contextmanager
def localized(name: str | None) -> Iterator[None]:
    """Switch LC_TIME to *name* for the duration of the block.

    Day and month names come from the platform locale database. When the
    locale is not installed the current one stays in effect.
    """
    if not name:
        yield
        return
    previous = locale.setlocale(locale.LC_TIME)
    for candidate in _locale_candidates(name):
        try:
            locale.setlocale(locale.LC_TIME, candidate)
            break
        except locale.Error:
            continue
    else:
        if name not in _missing_locales:
            _missing_locales.add(name)
            logger.warning("Locale %r is not available, using %r for names", name, previous)
        yield
        return
    try:
        yield
    finally:
        locale.setlocale(locale.LC_TIME, previous)


# ------------------------------------------------------------------
# Formatting
# ------------------------------------------------------------------
def format_date(d: date, fmt: str = DEFAULT_FORMAT, locale_name: str | None = None) -> str:
    with localized(locale_name):
        return d.strftime(fmt)


def parse_date(text: str, fmt: str = DEFAULT_FORMAT) -> date | None:
    """Parse *text* with *fmt*; return None when it does not match."""
    try:
        return datetime.strptime(text, fmt).date()
    except (TypeError, ValueError):
        return None


# ------------------------------------------------------------------
# Month grid
# ------------------------------------------------------------------
def _sunday_based_weekday(d: date) -> int:
    # Sunday=0 .. Saturday=6
    return (d.weekday() + 1) % 7


def within_bounds(d: date, min_date: date | None, max_date: date | None) -> bool:
    """Return True if *d* respects whichever of the inclusive bounds are set."""
    if min_date is not None and d < min_date:
        return False
    if max_date is not None and d > max_date:
        return False
    return True


def leading_blanks(reference: date, first_weekday_sunday: bool = False) -> int:
    """Return the start index of the grid loop (<= 1).

    Sunday-first calendars look up the weekday of the 2nd instead of the 1st,
    which yields the Sunday-aligned offset from the Monday-based formula.
    """
    anchor = reference.replace(day=2 if first_weekday_sunday else 1)
    first_weekday = _sunday_based_weekday(anchor)
    n = 1
    if first_weekday != 1:
        n -= (first_weekday + 6) % 7
    return n


def build_month(
    reference: date,
    first_weekday_sunday: bool = False,
    min_date: date | None = None,
    max_date: date | None = None,
    selected: date | CalendarDate | None = None,
    *,
    today: date | None = None,
    fmt: str = DEFAULT_FORMAT,
    locale_name: str | None = None,
) -> list[CalendarCell]:
    """Return the cells of *reference*'s month, padding cells first.

    The last week is not padded to seven cells.
    """
    year, month = reference.year, reference.month
    last_day = calendar.monthrange(year, month)[1]
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = today.date()
    if isinstance(selected, CalendarDate):
        selected = selected.date
    elif isinstance(selected, datetime):
        selected = selected.date()

    cells: list[CalendarCell] = []
    with localized(locale_name):
        for i in range(leading_blanks(reference, first_weekday_sunday), last_day + 1):
            if i <= 0:
                cells.append(CalendarCell())
                continue
            current = date(year, month, i)
            cells.append(CalendarCell(
                day=i,
                month=month,
                year=year,
                enabled=within_bounds(current, min_date, max_date),
                today=current == today,
                selected=selected is not None and current == selected,
                date=CalendarDate.from_date(current, fmt),
            ))
    return cells


def day_names(first_weekday_sunday: bool = False, locale_name: str | None = None) -> list[str]:
    """Return abbreviated weekday names in grid column order."""
    order = [6, 0, 1, 2, 3, 4, 5] if first_weekday_sunday else list(range(7))
    with localized(locale_name):
        return [calendar.day_abbr[i] for i in order]


def month_title(reference: date, locale_name: str | None = None) -> str:
    """Return the header text, e.g. ``"June 2016"``."""
    with localized(locale_name):
        return f"{calendar.month_name[reference.month]} {reference.year}"


# ------------------------------------------------------------------
# Navigation
# ------------------------------------------------------------------
def shift_months(d: date, months: int) -> date:
    """Move *d* by *months*, clamping the day to the target month's length."""
    return d + relativedelta(months=months)


def shift_years(d: date, years: int) -> date:
    return d + relativedelta(years=years)


def prev_month(d: date) -> date:
    """Return *d* moved one month earlier."""
    return shift_months(d, -1)


def next_month(d: date) -> date:
    """Return *d* moved one month later."""
    return shift_months(d, 1)


def year_range(
    min_date: date | None = None,
    max_date: date | None = None,
    *,
    today: date | None = None,
    span: int = YEAR_SPAN,
) -> list[int]:
    """Years offered by the year picker, both ends inclusive."""
    if today is None:
        today = date.today()
    first = min_date.year if min_date is not None else today.year - span
    last = max_date.year if max_date is not None else today.year + span
    return list(range(first, last + 1))
