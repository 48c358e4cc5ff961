"""
Test configuration and fixtures.

This module provides shared fixtures for all tests: customer snapshots,
calendar availability and invocation contexts for the scheduling flow.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from conversation.fsm.models import (
    AppointmentSummary,
    CalendarSlot,
    ConversationContext,
    PatientSnapshot,
)
from shared.config import get_settings

BUSINESS_TZ = "America/Argentina/Buenos_Aires"

# Monday, Nov 3, 2025, 12:00 business time
REFERENCE_NOW = datetime(2025, 11, 3, 12, 0, tzinfo=ZoneInfo(BUSINESS_TZ))

COMPLETE_PROFILE = {
    "id": 1,
    "full_name": "Ana Pérez",
    "dni": "30111222",
    "birth_date": "1990-12-31",
    "address": "Av. Siempre Viva 742",
    "insurance_provider": "Osde",
    "consult_reason": "Control anual",
    "conversation_state": "BOOKING_MENU",
}

NEW_PATIENT_FLAGS = {
    "full_name": "",
    "dni": None,
    "birth_date": None,
    "address": None,
    "insurance_provider": None,
    "consult_reason": None,
    "needs_dni": True,
    "needs_name": True,
    "needs_birth_date": True,
    "needs_address": True,
    "needs_insurance": True,
    "needs_consult_reason": True,
}


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reload settings for every test so env overrides never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_patient():
    """
    Factory for customer snapshots.

    Defaults to a complete profile sitting in BOOKING_MENU; pass new=True for
    a brand new customer with every field pending.
    """

    def _make(new: bool = False, **overrides) -> PatientSnapshot:
        values = dict(COMPLETE_PROFILE)
        if new:
            values.update(NEW_PATIENT_FLAGS)
        values.update(overrides)
        return PatientSnapshot(**values)

    return _make


@pytest.fixture
def available_slots() -> list[CalendarSlot]:
    """Three slots on two days (Tue Nov 4 x2, Wed Nov 5 x1)."""
    return [
        CalendarSlot(start_iso="2025-11-04T10:00:00-03:00", human_label="Martes 04/11 10:00"),
        CalendarSlot(start_iso="2025-11-04T11:30:00-03:00", human_label="Martes 04/11 11:30"),
        CalendarSlot(start_iso="2025-11-05T09:00:00-03:00", human_label="Miércoles 05/11 09:00"),
    ]


@pytest.fixture
def active_appointment() -> AppointmentSummary:
    return AppointmentSummary(id=7, human_label="Jueves 06/11 16:00")


@pytest.fixture
def make_context(make_patient, available_slots):
    """Factory for invocation contexts with the default slots and a complete profile."""

    def _make(text: str, patient: PatientSnapshot | None = None, **overrides) -> ConversationContext:
        values = {
            "incoming_text": text,
            "patient": patient or make_patient(),
            "timezone": BUSINESS_TZ,
            "business_type": "HEALTH",
            "available_slots": available_slots,
            "now": REFERENCE_NOW,
        }
        values.update(overrides)
        return ConversationContext(**values)

    return _make
