"""
Utility functions for the scheduling flow.

This module contains the leaf helpers used by every flow handler:
- text: Normalization and free-text formatting
- matching: Option matching, quick intents and keyword predicates
- calendar: Day/slot grouping into lettered options
- date_parser: Spanish day labels and birth date parsing
"""

from conversation.utils.calendar import (
    build_day_options,
    build_slot_options_for_day,
    option_letter_from_index,
    resolve_timezone,
)
from conversation.utils.date_parser import (
    format_day_label,
    get_weekday_name,
    parse_birth_date,
)
from conversation.utils.matching import (
    classify_quick_intent,
    match_option,
    should_defer_to_agent,
)
from conversation.utils.text import (
    fold_text,
    format_consult_reason_answer,
    normalize_insurance_answer,
    normalize_text,
)

__all__ = [
    # Calendar grouping
    "build_day_options",
    "build_slot_options_for_day",
    "option_letter_from_index",
    "resolve_timezone",
    # Dates
    "format_day_label",
    "get_weekday_name",
    "parse_birth_date",
    # Matching
    "classify_quick_intent",
    "match_option",
    "should_defer_to_agent",
    # Text
    "fold_text",
    "format_consult_reason_answer",
    "normalize_insurance_answer",
    "normalize_text",
]
