"""
Unit tests for the booking states: menu, day/slot selection, cancellation
confirmation and upload mode.

All tests go through handle_conversation_flow() so state resolution and the
dispatcher guards are exercised too.
"""

import pytest

from conversation import handle_conversation_flow
from conversation.fsm.booking_actions import STALE_REPLY, UPLOAD_INSTRUCTIONS, start_upload
from conversation.fsm.models import ConversationIntent, ConversationState, HandledResult
from conversation.utils.calendar import build_day_options, build_slot_options_for_day

BUSINESS_TZ = "America/Argentina/Buenos_Aires"


@pytest.fixture
def day_memory(available_slots):
    days = build_day_options(available_slots, BUSINESS_TZ)
    return {
        "intent": "book",
        "pendingDays": [day.to_payload() for day in days],
        "requireFreshReason": True,
    }


@pytest.fixture
def slot_memory(available_slots, day_memory):
    slots = build_slot_options_for_day(available_slots, "2025-11-04", BUSINESS_TZ)
    return {
        **day_memory,
        "selectedDayISO": "2025-11-04",
        "pendingSlots": [slot.to_payload() for slot in slots],
    }


# ============================================================================
# Booking menu
# ============================================================================


class TestBookingMenu:
    """Test BOOKING_MENU branches."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["A", "a", "1", "sacar turno", "Opción A"])
    async def test_book_shows_day_list(self, make_context, text):
        result = await handle_conversation_flow(make_context(text))

        assert result.next_state is ConversationState.BOOKING_CHOOSE_DAY
        assert [option.id for option in result.menu.options] == ["A", "B"]
        assert result.state_data.intent is ConversationIntent.BOOK
        assert result.state_data.require_fresh_reason is True

    @pytest.mark.asyncio
    async def test_book_keeps_reason_satisfied_from_onboarding(self, make_context, make_patient):
        patient = make_patient(conversation_state_data={"onboardingReasonSatisfied": True})

        result = await handle_conversation_flow(make_context("A", patient=patient))

        assert result.state_data.require_fresh_reason is False

    @pytest.mark.asyncio
    async def test_book_without_availability(self, make_context):
        result = await handle_conversation_flow(make_context("A", available_slots=[]))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert "no encuentro turnos disponibles" in result.reply
        assert result.booking_request is None

    @pytest.mark.asyncio
    async def test_reschedule_with_active_appointment(self, make_context, active_appointment):
        result = await handle_conversation_flow(
            make_context("B", active_appointment=active_appointment)
        )

        assert result.next_state is ConversationState.BOOKING_CHOOSE_DAY
        assert result.state_data.intent is ConversationIntent.RESCHEDULE
        assert result.state_data.reschedule_appointment_id == 7
        assert "Jueves 06/11 16:00" in result.reply

    @pytest.mark.asyncio
    async def test_reschedule_without_appointment(self, make_context):
        result = await handle_conversation_flow(make_context("reprogramar"))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert "No encuentro turnos confirmados para reprogramar" in result.reply

    @pytest.mark.asyncio
    async def test_reschedule_without_availability(self, make_context, active_appointment):
        result = await handle_conversation_flow(
            make_context("2", active_appointment=active_appointment, available_slots=[])
        )

        assert result.next_state is ConversationState.BOOKING_MENU
        assert "no hay horarios alternativos" in result.reply

    @pytest.mark.asyncio
    async def test_cancel_asks_for_confirmation(self, make_context, active_appointment):
        result = await handle_conversation_flow(
            make_context("Quiero cancelar el turno", active_appointment=active_appointment)
        )

        assert result.next_state is ConversationState.BOOKING_CONFIRM
        assert result.state_data.intent is ConversationIntent.CANCEL
        assert result.state_data.reschedule_appointment_id == 7
        assert result.cancel_request is None

    @pytest.mark.asyncio
    async def test_cancel_without_appointment(self, make_context):
        result = await handle_conversation_flow(make_context("C"))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.reply.startswith("No tenés turnos para cancelar")
        assert result.cancel_request is None

    @pytest.mark.asyncio
    async def test_upload(self, make_context):
        result = await handle_conversation_flow(make_context("D"))

        assert result.next_state is ConversationState.UPLOAD_WAITING
        assert result.state_data is None

    @pytest.mark.asyncio
    async def test_unrecognized_option_reshows_menu(self, make_context):
        result = await handle_conversation_flow(make_context("xyz"))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.reply.startswith("No entendí la opción")
        assert [option.id for option in result.menu.options] == ["A", "B", "C", "D"]

    @pytest.mark.asyncio
    async def test_back_keeps_reason_satisfied(self, make_context, make_patient):
        patient = make_patient(conversation_state_data={"onboardingReasonSatisfied": True})

        result = await handle_conversation_flow(make_context("volver", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.state_data.onboarding_reason_satisfied is True

    def test_upload_with_pending_fields_redirects_to_first_field(self, make_context, make_patient):
        context = make_context("D", patient=make_patient(needs_address=True, needs_insurance=True))

        result = start_upload(context)

        assert result.next_state is ConversationState.PROFILE_ADDRESS
        assert "dirección" in result.reply


# ============================================================================
# Day selection
# ============================================================================


class TestChooseDay:
    """Test BOOKING_CHOOSE_DAY."""

    @pytest.mark.asyncio
    async def test_day_match_shows_slots(self, make_context, make_patient, day_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        result = await handle_conversation_flow(make_context("A", patient=patient))

        assert result.next_state is ConversationState.BOOKING_CHOOSE_SLOT
        assert result.reply == "Estos son los horarios para Martes 04/11 (2 turnos):"
        assert [option.label for option in result.menu.options] == [
            "Martes 04/11 10:00",
            "Martes 04/11 11:30",
        ]
        assert result.state_data.selected_day_iso == "2025-11-04"
        assert len(result.state_data.pending_days) == 2

    @pytest.mark.asyncio
    async def test_letter_and_number_are_equivalent(self, make_context, make_patient, day_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        by_letter = await handle_conversation_flow(make_context("B", patient=patient))
        by_number = await handle_conversation_flow(make_context("2", patient=patient))
        by_phrase = await handle_conversation_flow(make_context("opción b", patient=patient))

        assert by_letter.to_payload() == by_number.to_payload() == by_phrase.to_payload()

    @pytest.mark.asyncio
    async def test_unknown_day_reprompts(self, make_context, make_patient, day_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        result = await handle_conversation_flow(make_context("Z", patient=patient))

        assert result.next_state is ConversationState.BOOKING_CHOOSE_DAY
        assert result.state_data.to_payload() == day_memory

    @pytest.mark.asyncio
    async def test_day_without_slots_anymore(self, make_context, make_patient, day_memory, available_slots):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        result = await handle_conversation_flow(
            make_context("B", patient=patient, available_slots=available_slots[:2])
        )

        assert result.next_state is ConversationState.BOOKING_CHOOSE_DAY
        assert result.reply.startswith("Ese día ya no tiene horarios")

    @pytest.mark.asyncio
    async def test_back_goes_to_booking_menu(self, make_context, make_patient, day_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        result = await handle_conversation_flow(make_context("volver", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.state_data is None

    @pytest.mark.asyncio
    async def test_empty_day_list_is_stale(self, make_context, make_patient):
        patient = make_patient(
            conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data={"intent": "book"}
        )

        result = await handle_conversation_flow(make_context("A", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.reply == STALE_REPLY
        assert result.state_data is None

    @pytest.mark.asyncio
    async def test_quick_intent_cancel(self, make_context, make_patient, day_memory, active_appointment):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_DAY", conversation_state_data=day_memory)

        result = await handle_conversation_flow(
            make_context("mejor quiero cancelar", patient=patient, active_appointment=active_appointment)
        )

        assert result.next_state is ConversationState.BOOKING_CONFIRM
        assert result.state_data.intent is ConversationIntent.CANCEL


# ============================================================================
# Slot selection
# ============================================================================


class TestChooseSlot:
    """Test BOOKING_CHOOSE_SLOT."""

    @pytest.mark.asyncio
    async def test_reason_on_file_books_directly(self, make_context, make_patient):
        memory = {
            "intent": "book",
            "requireFreshReason": False,
            "pendingSlots": [
                {"id": "A", "startISO": "2025-11-05T09:00:00-03:00", "label": "Miércoles 05/11 09:00", "aliases": ["1"]}
            ],
        }
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=memory)

        result = await handle_conversation_flow(make_context("A", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.state_data is None
        assert result.booking_request.type == "book"
        assert result.booking_request.slot_iso == "2025-11-05T09:00:00-03:00"

    @pytest.mark.asyncio
    async def test_letter_and_number_are_equivalent(self, make_context, make_patient, slot_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=slot_memory)

        by_letter = await handle_conversation_flow(make_context("B", patient=patient))
        by_number = await handle_conversation_flow(make_context("2", patient=patient))

        assert by_letter.to_payload() == by_number.to_payload()

    @pytest.mark.asyncio
    async def test_fresh_reason_required(self, make_context, make_patient, slot_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=slot_memory)

        result = await handle_conversation_flow(make_context("B", patient=patient))

        assert result.next_state is ConversationState.PROFILE_REASON
        assert result.booking_request is None
        assert result.state_data.pending_reason_slot.slot_iso == "2025-11-04T11:30:00-03:00"
        assert result.state_data.require_fresh_reason is True

    @pytest.mark.asyncio
    async def test_reason_not_on_file(self, make_context, make_patient, slot_memory):
        memory = {**slot_memory, "requireFreshReason": False}
        patient = make_patient(
            consult_reason=None,
            conversation_state="BOOKING_CHOOSE_SLOT",
            conversation_state_data=memory,
        )

        result = await handle_conversation_flow(make_context("A", patient=patient))

        assert result.next_state is ConversationState.PROFILE_REASON

    @pytest.mark.asyncio
    async def test_reschedule_requests_move(self, make_context, make_patient, slot_memory):
        memory = {**slot_memory, "intent": "reschedule", "rescheduleAppointmentId": 7}
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=memory)

        result = await handle_conversation_flow(make_context("1", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.state_data is None
        assert result.booking_request.to_payload() == {
            "type": "reschedule",
            "slotISO": "2025-11-04T10:00:00-03:00",
            "slotLabel": "Martes 04/11 10:00",
            "appointmentId": 7,
        }

    @pytest.mark.asyncio
    async def test_back_goes_to_day_list(self, make_context, make_patient, slot_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=slot_memory)

        result = await handle_conversation_flow(make_context("atrás", patient=patient))

        assert result.next_state is ConversationState.BOOKING_CHOOSE_DAY
        assert result.state_data.pending_slots == []
        assert len(result.menu.options) == 2

    @pytest.mark.asyncio
    async def test_unknown_slot_reprompts(self, make_context, make_patient, slot_memory):
        patient = make_patient(conversation_state="BOOKING_CHOOSE_SLOT", conversation_state_data=slot_memory)

        result = await handle_conversation_flow(make_context("F", patient=patient))

        assert result.next_state is ConversationState.BOOKING_CHOOSE_SLOT
        assert result.reply.startswith("No identifiqué ese horario")


# ============================================================================
# Confirmation and upload
# ============================================================================


class TestConfirmation:
    """Test BOOKING_CONFIRM."""

    @pytest.fixture
    def confirm_patient(self, make_patient):
        return make_patient(
            conversation_state="BOOKING_CONFIRM",
            conversation_state_data={"intent": "cancel", "rescheduleAppointmentId": 7},
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["Sí", "si, cancelalo", "dale", "confirmo"])
    async def test_affirmative_cancels(self, make_context, confirm_patient, text):
        result = await handle_conversation_flow(make_context(text, patient=confirm_patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.cancel_request.appointment_id == 7
        assert result.state_data is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["no", "No, mejor lo dejo", "volver"])
    async def test_negative_aborts(self, make_context, confirm_patient, text):
        result = await handle_conversation_flow(make_context(text, patient=confirm_patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.cancel_request is None
        assert result.reply.startswith("No cancelé nada")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["cancelar", "Cancelá"])
    async def test_bare_cancel_keyword_does_not_cancel(self, make_context, confirm_patient, text):
        result = await handle_conversation_flow(make_context(text, patient=confirm_patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.cancel_request is None
        assert result.reply.startswith("No cancelé nada")

    @pytest.mark.asyncio
    async def test_unclear_answer_reprompts(self, make_context, confirm_patient):
        result = await handle_conversation_flow(make_context("tal vez", patient=confirm_patient))

        assert result.next_state is ConversationState.BOOKING_CONFIRM
        assert result.state_data.reschedule_appointment_id == 7
        assert result.cancel_request is None

    @pytest.mark.asyncio
    async def test_missing_appointment_returns_to_menu(self, make_context, make_patient):
        patient = make_patient(conversation_state="BOOKING_CONFIRM", conversation_state_data={"intent": "cancel"})

        result = await handle_conversation_flow(make_context("sí", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
        assert result.cancel_request is None


class TestUpload:
    """Test UPLOAD_WAITING."""

    @pytest.mark.asyncio
    async def test_any_message_restates_instructions(self, make_context, make_patient):
        patient = make_patient(conversation_state="UPLOAD_WAITING")

        result = await handle_conversation_flow(make_context("te mando la receta", patient=patient))

        assert isinstance(result, HandledResult)
        assert result.next_state is ConversationState.UPLOAD_WAITING
        assert result.reply == UPLOAD_INSTRUCTIONS

    @pytest.mark.asyncio
    async def test_back_returns_to_menu(self, make_context, make_patient):
        patient = make_patient(conversation_state="UPLOAD_WAITING")

        result = await handle_conversation_flow(make_context("volver", patient=patient))

        assert result.next_state is ConversationState.BOOKING_MENU
