"""Date helpers: natural-language date parsing and availability windows."""

import re
from datetime import UTC, date, datetime, time, timedelta

# Day-of-week name → weekday int (Monday = 0)
_DAY_NAMES: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

# Month name/abbreviation → month int
_MONTH_NAMES: dict[str, int] = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}

DEFAULT_WINDOW_DAYS = 15


def utcnow() -> datetime:
    return datetime.now(UTC)


def _next_weekday(today: date, weekday: int, *, skip_week: bool = False) -> date:
    days_ahead = (weekday - today.weekday()) % 7 or 7
    if skip_week:
        days_ahead += 7
    return today + timedelta(days=days_ahead)


def _upcoming(today: date, month: int, day: int) -> date:
    result = date(today.year, month, day)
    if result < today:
        result = date(today.year + 1, month, day)
    return result


def parse_date(text: str, today: date | None = None) -> str:
    """Parse a date the way a guest would say it into YYYY-MM-DD.

    Supported formats:
    - ISO passthrough: "2026-02-14"
    - "today", "tomorrow"
    - Day name: "Saturday", "this Saturday" (→ next occurrence)
    - "next Saturday" (→ the Saturday *after* this one)
    - "Feb 14", "February 14" (current or next year)
    - "2/14" (month/day)

    Args:
        text: The date string to parse.
        today: Override for today's date (for testing).

    Raises:
        ValueError: If the string cannot be parsed.
    """
    today = today or utcnow().date()
    cleaned = text.strip().lower()

    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", cleaned):
        return date.fromisoformat(cleaned).isoformat()
    if cleaned == "today":
        return today.isoformat()
    if cleaned == "tomorrow":
        return (today + timedelta(days=1)).isoformat()

    weekday = re.fullmatch(r"(next\s+|this\s+)?([a-z]+)", cleaned)
    if weekday and weekday.group(2) in _DAY_NAMES:
        skip = (weekday.group(1) or "").strip() == "next"
        return _next_weekday(today, _DAY_NAMES[weekday.group(2)], skip_week=skip).isoformat()

    month_day = re.fullmatch(r"([a-z]+)\s+(\d{1,2})", cleaned)
    if month_day and month_day.group(1) in _MONTH_NAMES:
        month = _MONTH_NAMES[month_day.group(1)]
        return _upcoming(today, month, int(month_day.group(2))).isoformat()

    slash_date = re.fullmatch(r"(\d{1,2})/(\d{1,2})", cleaned)
    if slash_date:
        month, day = int(slash_date.group(1)), int(slash_date.group(2))
        return _upcoming(today, month, day).isoformat()

    raise ValueError(f"Cannot parse date: '{text}'")


def parse_timestamp(value: str) -> datetime | None:
    """Parse an upstream ISO date or datetime; naive values are taken as UTC.

    Returns ``None`` for values that are not ISO-8601.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def availability_window(
    start_date: str | None,
    now: datetime | None = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` window for date availability.

    Without *start_date* the window opens at *now*; otherwise at UTC
    midnight of that date. It closes *days* later.
    """
    if start_date:
        start = datetime.combine(date.fromisoformat(start_date), time.min, tzinfo=UTC)
    else:
        start = now or utcnow()
    return start, start + timedelta(days=days)
