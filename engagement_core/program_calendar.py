"""Calendar arithmetic for cohorts and program weeks.

All dates are normalized to calendar-day precision before they are
compared, bucketed, or sorted. Program weeks are 1-indexed 7-day buckets
counted from the Cohort 0 start date (the epoch):

    days = |date - epoch|
    week = max(1, ceil(days / 7))

so the epoch day and the following seven days are Week 1, and every later
bucket starts on epoch + (n - 1) * 7 + 1. ``week_start_date`` returns that
first day, which makes the forward and backward mappings agree.

Cohorts are bounded by three fixed, strictly increasing start dates; a
date belongs to the latest boundary it falls on or after.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta, timezone

logger = logging.getLogger(__name__)

# Ordered (label, first day) pairs; must stay strictly increasing.
COHORT_BOUNDARIES: tuple[tuple[str, date], ...] = (
    ("Cohort 0", date(2023, 10, 1)),
    ("Cohort 1", date(2024, 1, 1)),
    ("Cohort 2", date(2024, 4, 1)),
)

PROGRAM_EPOCH: date = COHORT_BOUNDARIES[0][1]
DAYS_PER_WEEK = 7

_WEEK_PATTERN = re.compile(r"week\s*(\d+)", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*(\d+)")


class MalformedDateError(ValueError):
    """Raised when a record's date is missing or cannot be parsed.

    Attributes:
        value: The offending raw value.
    """

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid date format: {value!r}")


def normalize_date(value) -> date:
    """Reduce a date, datetime, or ISO-8601 string to a calendar day.

    Aware datetimes are converted to UTC first so the day matches the
    upstream ISO timestamp. A trailing ``Z`` is accepted.

    Raises:
        MalformedDateError: On empty or unparseable input.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedDateError(value)

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise MalformedDateError(value) from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def determine_cohort(day: date) -> str:
    """Return the label of the latest cohort boundary on or before ``day``.

    Days before the first boundary belong to the first cohort.
    """
    label = COHORT_BOUNDARIES[0][0]
    for cohort_label, start in COHORT_BOUNDARIES:
        if day >= start:
            label = cohort_label
    return label


def week_number_from_date(day: date) -> int:
    """Map a calendar day to its 1-indexed program week number."""
    days = abs((day - PROGRAM_EPOCH).days)
    return max(1, math.ceil(days / DAYS_PER_WEEK))


def week_label(week_number: int) -> str:
    return f"Week {week_number}"


def parse_week_number(week: str | int | None) -> int:
    """Extract a positive week number from a survey week label.

    Handles ``"Week 7"``, ``"Week 7 (Jan 1 - Jan 7, 2024)"``, and a bare
    ``"7"``. Returns 0 when no positive number is present.
    """
    if isinstance(week, int):
        return week if week > 0 else 0
    if not week:
        return 0

    match = _WEEK_PATTERN.search(week) or _LEADING_INT.match(week)
    if match:
        number = int(match.group(1))
        if number > 0:
            return number
    return 0


def week_start_date(week: str | int | None) -> date:
    """Return the first calendar day of a program week.

    Unparseable labels fall back to Week 1 (the epoch).
    """
    number = parse_week_number(week) or 1
    if number == 1:
        return PROGRAM_EPOCH
    return PROGRAM_EPOCH + timedelta(days=(number - 1) * DAYS_PER_WEEK + 1)
