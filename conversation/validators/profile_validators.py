"""
Profile field parsers for onboarding answers.

Each parser takes the raw customer answer and returns the canonical value to
store on the profile, or None when the answer is not usable (the handler then
re-prompts for the same field):
- parse_dni: national id, digits only
- parse_full_name: first and last name, title-cased
- parse_birth_date_answer: ISO date string, never in the future
- parse_address: free-text street address
"""

import re
from datetime import date, datetime

from conversation.utils.date_parser import parse_birth_date
from conversation.utils.text import collapse_whitespace

DEFAULT_DNI_MIN_DIGITS = 7
DEFAULT_DNI_MAX_DIGITS = 10
MIN_ADDRESS_LENGTH = 5

_NON_DIGIT = re.compile(r"\D")
_NAME_PATTERN = re.compile(r"^[a-záéíóúñü\s.'-]+$", re.IGNORECASE)
_LETTER = re.compile(r"[^\W\d_]")


def parse_dni(
    raw: str | None,
    min_digits: int = DEFAULT_DNI_MIN_DIGITS,
    max_digits: int = DEFAULT_DNI_MAX_DIGITS,
) -> str | None:
    """
    Extract a national id from the answer.

    Args:
        raw: Customer answer (e.g., "12.345.678", "DNI 30111222")
        min_digits: Minimum number of digits (default: 7)
        max_digits: Maximum number of digits (default: 10)

    Returns:
        The digits as a string, or None if the count is out of range

    Example:
        >>> parse_dni("12.345.678")
        '12345678'
    """
    digits = _NON_DIGIT.sub("", raw or "")
    if min_digits <= len(digits) <= max_digits:
        return digits
    return None


def parse_full_name(raw: str | None) -> str | None:
    """
    Validate and title-case a full name ("ana  pérez" -> "Ana Pérez").

    At least two words, each with a letter; letters (with accents), spaces,
    dots, apostrophes and hyphens only.
    """
    value = collapse_whitespace(raw or "")
    words = value.split(" ")
    if not value or len(words) < 2:
        return None
    if not _NAME_PATTERN.match(value) or not all(_LETTER.search(word) for word in words):
        return None
    return " ".join(word[0].upper() + word[1:].lower() for word in words)


def parse_birth_date_answer(
    raw: str | None,
    reference_date: datetime | date | None = None,
    year_pivot: int = 40,
) -> str | None:
    """Birth date answer as "YYYY-MM-DD", or None if it is not a valid past date."""
    parsed = parse_birth_date(raw, reference_date=reference_date, year_pivot=year_pivot)
    if parsed is None:
        return None
    return parsed.isoformat()


def parse_address(raw: str | None) -> str | None:
    value = collapse_whitespace(raw or "")
    if len(value) < MIN_ADDRESS_LENGTH:
        return None
    return value
