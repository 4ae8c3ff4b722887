"""Date parsing helpers for appointment dates typed by staff or customers."""

import re
from datetime import date, timedelta

# Day-of-week name → weekday int (Monday = 0, as date.weekday())
_DAY_NAMES: dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
    "الاثنين": 0, "الثلاثاء": 1, "الأربعاء": 2, "الخميس": 3,
    "الجمعة": 4, "السبت": 5, "الأحد": 6,
}

_RELATIVE: dict[str, int] = {
    "today": 0, "اليوم": 0,
    "tomorrow": 1, "غدا": 1, "غداً": 1, "بكرة": 1,
}

# Month name/abbreviation → month int
_MONTH_NAMES: dict[str, int] = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6,
    "jul": 7, "july": 7, "aug": 8, "august": 8, "sep": 9, "september": 9,
    "oct": 10, "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}


def _next_weekday(today: date, weekday: int) -> date:
    days_ahead = (weekday - today.weekday()) % 7
    return today + timedelta(days=days_ahead)


def parse_appointment_date(text: str, today: date | None = None) -> date:
    """Parse an appointment date.

    Supported formats:
    - ISO: "2026-02-14"
    - "today" / "tomorrow" (also اليوم / غدا)
    - Day name: "Saturday", "السبت" (→ next occurrence, today included)
    - "Feb 14", "February 14" (current or next year)
    - "14/2" (day/month, as written locally)

    Args:
        text: The date string to parse.
        today: Override for today's date (for testing).

    Raises:
        ValueError: If the string cannot be parsed.
    """
    today = today or date.today()
    cleaned = text.strip().lower()

    if re.match(r"\d{4}-\d{2}-\d{2}$", cleaned):
        return date.fromisoformat(cleaned)

    if cleaned in _RELATIVE:
        return today + timedelta(days=_RELATIVE[cleaned])

    if cleaned in _DAY_NAMES:
        return _next_weekday(today, _DAY_NAMES[cleaned])

    month_day = re.match(r"([a-z]+)\s+(\d{1,2})$", cleaned)
    if month_day and month_day.group(1) in _MONTH_NAMES:
        month = _MONTH_NAMES[month_day.group(1)]
        result = date(today.year, month, int(month_day.group(2)))
        if result < today:
            result = date(today.year + 1, month, result.day)
        return result

    slash_date = re.match(r"(\d{1,2})/(\d{1,2})$", cleaned)
    if slash_date:
        day = int(slash_date.group(1))
        month = int(slash_date.group(2))
        result = date(today.year, month, day)
        if result < today:
            result = date(today.year + 1, month, day)
        return result

    raise ValueError(f"Cannot parse date: '{text}'")
