"""Calendar generation for periodic milestones.

``generate_milestones`` is a pure function of its inputs and the clock: it
builds the desired milestone set for a cadence and horizon. Titles always
use a provider-neutral shape (``2024-05-17``, ``2024-w20``, ``2024-05``);
only the due-date rendering depends on the target provider.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import TypeVar

from .errors import InvalidInputError
from .models import Milestone

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
CADENCES = (DAILY, WEEKLY, MONTHLY)

DATE_FORMAT = "date"  # YYYY-MM-DD
RFC3339_FORMAT = "rfc3339"  # 2024-05-17T09:30:00+02:00
DATE_FORMATS = (DATE_FORMAT, RFC3339_FORMAT)

_SUNDAY = 6

_D = TypeVar("_D", date, datetime)


def last_day_of_week(day: _D) -> _D:
    """Return the first Sunday on or after ``day``.

    Walks forward, so a Monday maps to the Sunday six days later.
    """
    while day.weekday() != _SUNDAY:
        day = day + timedelta(days=1)
    return day


def last_day_of_month(year: int, month: int) -> date:
    """Return the last calendar day of ``month`` (the day before the 1st of the next)."""
    if month == 12:  # noqa: PLR2004
        first_of_next = date(year + 1, 1, 1)
    else:
        first_of_next = date(year, month + 1, 1)
    return first_of_next - timedelta(days=1)


def add_months(year: int, month: int, count: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + count
    return index // 12, index % 12 + 1


def format_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        # resolve the local offset for this particular day (DST aware)
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def format_due_date(moment: datetime, date_format: str) -> str:
    if date_format == DATE_FORMAT:
        return moment.strftime("%Y-%m-%d")
    if date_format == RFC3339_FORMAT:
        return format_rfc3339(moment)
    raise InvalidInputError(f"invalid date format {date_format!r}")


def _daily(now: datetime, advance: int, fmt: Callable[[datetime], str]) -> dict[str, Milestone]:
    out: dict[str, Milestone] = {}
    for i in range(advance):
        day = now + timedelta(days=i)
        title = day.strftime("%Y-%m-%d")
        out[title] = Milestone(title=title, due_date=fmt(day))
    return out


def _weekly(now: datetime, advance: int, fmt: Callable[[datetime], str]) -> dict[str, Milestone]:
    out: dict[str, Milestone] = {}
    reference = now
    for _ in range(advance):
        last = last_day_of_week(reference)
        iso_year, iso_week, _weekday = last.isocalendar()
        title = f"{iso_year}-w{iso_week}"
        out[title] = Milestone(title=title, due_date=fmt(last))
        # chain from the computed Sunday, not from today
        reference = last + timedelta(days=7)
    return out


def _monthly(now: datetime, advance: int, fmt: Callable[[datetime], str]) -> dict[str, Milestone]:
    out: dict[str, Milestone] = {}
    for i in range(advance):
        year, month = add_months(now.year, now.month, i)
        last = last_day_of_month(year, month)
        due = datetime(last.year, last.month, last.day, tzinfo=timezone.utc)
        title = f"{year}-{month:02d}"
        out[title] = Milestone(title=title, due_date=fmt(due))
    return out


_GENERATORS = {
    DAILY: _daily,
    WEEKLY: _weekly,
    MONTHLY: _monthly,
}


def generate_milestones(
    advance: int,
    cadence: str,
    date_format: str = DATE_FORMAT,
    *,
    now: datetime | None = None,
) -> dict[str, Milestone]:
    """Build the desired milestone set keyed by title.

    ``now`` pins the clock. Naive datetimes are local wall-clock time and
    each due date gets the UTC offset in effect on its own day.
    Raises :class:`InvalidInputError` for an unknown cadence or date format
    or a negative horizon.
    """
    generator = _GENERATORS.get((cadence or "").strip().lower())
    if generator is None:
        raise InvalidInputError(
            f"invalid cadence {cadence!r} (expected one of: {', '.join(CADENCES)})"
        )
    if date_format not in DATE_FORMATS:
        raise InvalidInputError(f"invalid date format {date_format!r}")
    if advance < 0:
        raise InvalidInputError(f"advance must be >= 0, got {advance}")
    moment = now if now is not None else datetime.now()
    return generator(moment, advance, lambda d: format_due_date(d, date_format))


__all__ = [
    "DAILY",
    "WEEKLY",
    "MONTHLY",
    "CADENCES",
    "DATE_FORMAT",
    "RFC3339_FORMAT",
    "generate_milestones",
    "last_day_of_week",
    "last_day_of_month",
    "add_months",
    "format_due_date",
    "format_rfc3339",
]
