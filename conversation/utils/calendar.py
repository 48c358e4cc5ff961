"""
Calendar grouping for day and slot menus.

Turns the flat list of available slots into lettered option lists:
- build_day_options(): one option per calendar day in the business timezone
- build_slot_options_for_day(): one option per slot within a chosen day

Options are lettered A, B, C, ... (then AA, AB, ...) in generation order and
carry the 1-based position as a numeric alias, so "B" and "2" select the same
option.
"""

import logging
import string
from collections.abc import Sequence
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from conversation.fsm.models import CalendarSlot, DayOption, SlotOption
from conversation.utils.date_parser import format_day_label
from shared.config import get_settings

logger = logging.getLogger(__name__)


def option_letter_from_index(index: int) -> str:
    """
    Letter id for the 1-based option index.

    Examples:
        >>> option_letter_from_index(1)
        'A'
        >>> option_letter_from_index(27)
        'AA'
    """
    if index < 1:
        raise ValueError(f"Option index must be 1 or greater, got {index}")
    letters = ""
    n = index - 1
    while n >= 0:
        letters = string.ascii_uppercase[n % 26] + letters
        n = n // 26 - 1
    return letters


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Business timezone, falling back to settings.TIMEZONE for unknown names."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{name}', using {get_settings().TIMEZONE}")
    return ZoneInfo(get_settings().TIMEZONE)


def parse_slot_start(start_iso: str, timezone: ZoneInfo) -> datetime | None:
    """
    Parse a slot start as an aware datetime in the business timezone.

    Naive timestamps are taken as business-local time. Returns None if the
    value is not ISO 8601.
    """
    try:
        parsed = datetime.fromisoformat(start_iso.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone)
    return parsed.astimezone(timezone)


def _local_slots(
    slots: Sequence[CalendarSlot], timezone: ZoneInfo
) -> list[tuple[datetime, CalendarSlot]]:
    """Parseable slots with their local start, in chronological order."""
    local = []
    for slot in slots:
        start = parse_slot_start(slot.start_iso, timezone)
        if start is None:
            logger.warning(f"Skipping slot with invalid start | start={slot.start_iso!r}")
            continue
        local.append((start, slot))
    local.sort(key=lambda item: item[0])
    return local


def _count_label(count: int) -> str:
    return "1 turno" if count == 1 else f"{count} turnos"


def build_day_options(slots: Sequence[CalendarSlot], timezone: str | None) -> list[DayOption]:
    """
    Group available slots into one option per local calendar day.

    Args:
        slots: Flat list of available slots
        timezone: Business timezone (IANA name)

    Returns:
        Day options in chronological order, e.g.
        DayOption(id="A", date_iso="2025-11-04", label="Martes 04/11 (3 turnos)", aliases=["1"])
    """
    tz = resolve_timezone(timezone)
    counts: dict[date, int] = {}
    for start, _slot in _local_slots(slots, tz):
        counts[start.date()] = counts.get(start.date(), 0) + 1

    options = []
    for index, (day, count) in enumerate(counts.items(), start=1):
        options.append(
            DayOption(
                id=option_letter_from_index(index),
                date_iso=day.isoformat(),
                label=f"{format_day_label(day)} ({_count_label(count)})",
                aliases=[str(index)],
            )
        )
    return options


def build_slot_options_for_day(
    slots: Sequence[CalendarSlot], day_iso: str, timezone: str | None
) -> list[SlotOption]:
    """
    Slot options for one local calendar day.

    Args:
        slots: Flat list of available slots
        day_iso: Day to keep ("YYYY-MM-DD", business-local)
        timezone: Business timezone (IANA name)

    Returns:
        Slot options in chronological order, labelled with each slot's human label
    """
    tz = resolve_timezone(timezone)
    options = []
    for start, slot in _local_slots(slots, tz):
        if start.date().isoformat() != day_iso:
            continue
        index = len(options) + 1
        options.append(
            SlotOption(
                id=option_letter_from_index(index),
                start_iso=slot.start_iso,
                label=slot.human_label,
                aliases=[str(index)],
            )
        )
    return options
