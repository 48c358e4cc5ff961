"""
Spanish date helpers.

Formats calendar days for menus ("Martes 04/11") and parses the birth dates
customers type during onboarding ("15/08/1987", "3-4-90", "1.2.2001").
"""

import re
from datetime import date, datetime

WEEKDAY_NAMES = [
    "lunes",
    "martes",
    "miércoles",
    "jueves",
    "viernes",
    "sábado",
    "domingo",
]

# D/M/Y, D-M-Y, D.M.Y or space separated, 2-4 digit year
_BIRTH_DATE_PATTERN = re.compile(r"(?<!\d)(\d{1,2})[/\-.\s]+(\d{1,2})[/\-.\s]+(\d{2,4})(?!\d)")


def get_weekday_name(day: date) -> str:
    """
    Get the Spanish weekday name for a given date.

    Example:
        >>> get_weekday_name(date(2025, 11, 7))  # Friday
        'viernes'
    """
    return WEEKDAY_NAMES[day.weekday()]


def format_day_label(day: date) -> str:
    """
    Short day label used in menus.

    Example:
        >>> format_day_label(date(2025, 11, 4))
        'Martes 04/11'
    """
    weekday = get_weekday_name(day)
    return f"{weekday[0].upper()}{weekday[1:]} {day:%d/%m}"


def parse_birth_date(
    raw: str | None,
    reference_date: datetime | date | None = None,
    year_pivot: int = 40,
) -> date | None:
    """
    Parse a birth date typed by the customer.

    Args:
        raw: Customer answer (e.g., "15/08/1987", "3-4-90", "nací el 1.2.2001")
        reference_date: "Today" for the not-in-the-future check (default: now)
        year_pivot: Two-digit years below the pivot are 2000s, the rest 1900s

    Returns:
        date if the answer is a real calendar date between 1900 and the
        reference date, None otherwise.

    Examples:
        >>> parse_birth_date("31/12/1990")
        datetime.date(1990, 12, 31)
        >>> parse_birth_date("1-2-05", reference_date=date(2025, 1, 1))
        datetime.date(2005, 2, 1)
        >>> parse_birth_date("31/02/1990") is None
        True
    """
    if not raw:
        return None
    match = _BIRTH_DATE_PATTERN.search(raw.strip())
    if not match:
        return None

    day, month, year = (int(group) for group in match.groups())
    if len(match.group(3)) == 2:
        year += 2000 if year < year_pivot else 1900
    if year < 1900:
        return None

    try:
        result = date(year, month, day)
    except ValueError:
        return None

    if reference_date is None:
        reference_date = datetime.now()
    today = reference_date.date() if isinstance(reference_date, datetime) else reference_date
    if result > today:
        return None
    return result
