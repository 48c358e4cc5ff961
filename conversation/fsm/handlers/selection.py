"""
Day and slot selection handlers (BOOKING_CHOOSE_DAY, BOOKING_CHOOSE_SLOT).

Both states check, in order:
1. Staleness: no options in working memory resets to the booking menu
2. "menu": booking menu with cleared memory
3. Back command: previous step (day -> booking menu, slot -> day list)
4. Quick intents: re-enter the booking menu branch
5. Option match by letter or numeric alias
"""

import logging

from conversation.fsm.booking_actions import (
    MENU_REPLY,
    menu_memory,
    resolve_quick_intent,
    show_booking_menu,
    stale_reset,
)
from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.menus import build_day_menu, build_slot_menu
from conversation.fsm.models import (
    BookingRequest,
    ConversationFlowResult,
    ConversationIntent,
    ConversationState,
    HandledResult,
    PendingReasonSlot,
    SlotOption,
)
from conversation.utils.calendar import build_slot_options_for_day
from conversation.utils.matching import (
    classify_quick_intent,
    is_back_command,
    is_menu_keyword,
    match_option,
)

logger = logging.getLogger(__name__)


class ChooseDayHandler(FlowHandler):
    """BOOKING_CHOOSE_DAY: pick a day from the generated day list."""

    state = ConversationState.BOOKING_CHOOSE_DAY

    async def handle(self, text: str) -> ConversationFlowResult:
        if not self.data.pending_days:
            logger.warning(
                f"Day list missing from working memory | patient_id={self.patient.id}",
                extra={"patient_id": self.patient.id, "conversation_state": self.state.value},
            )
            return stale_reset()
        if is_menu_keyword(text):
            return show_booking_menu(MENU_REPLY)
        if is_back_command(text):
            return show_booking_menu("Volvemos al menú principal.", state_data=menu_memory(self.data))

        intent = classify_quick_intent(text)
        if intent is not None:
            return resolve_quick_intent(intent, self.context, self.data, self.settings)

        day = match_option(text, self.data.pending_days)
        if day is None:
            return self.reprompt(
                "No identifiqué esa opción. Elegí uno de los días listados:",
                menu=build_day_menu(self.data.pending_days),
            )

        slots = build_slot_options_for_day(
            self.context.available_slots, day.date_iso, self.context.timezone
        )
        if not slots:
            return self.reprompt(
                "Ese día ya no tiene horarios disponibles. Elegí otro día del listado.",
                menu=build_day_menu(self.data.pending_days),
            )

        return HandledResult(
            reply=f"Estos son los horarios para {day.label}:",
            menu=build_slot_menu(slots),
            next_state=ConversationState.BOOKING_CHOOSE_SLOT,
            state_data=self.data.model_copy(
                update={"selected_day_iso": day.date_iso, "pending_slots": slots}
            ),
        )


class ChooseSlotHandler(FlowHandler):
    """
    BOOKING_CHOOSE_SLOT: pick a time within the selected day.

    For a new booking the slot is booked right away when the customer already
    gave a reason for this flow and one is on file; otherwise the reason is
    asked first. A reschedule is requested directly.
    """

    state = ConversationState.BOOKING_CHOOSE_SLOT

    async def handle(self, text: str) -> ConversationFlowResult:
        if not self.data.pending_slots:
            return stale_reset()
        if is_menu_keyword(text):
            return show_booking_menu(MENU_REPLY)
        if is_back_command(text):
            return self.back_to_days()

        intent = classify_quick_intent(text)
        if intent is not None:
            return resolve_quick_intent(intent, self.context, self.data, self.settings)

        slot = match_option(text, self.data.pending_slots)
        if slot is None:
            return self.reprompt(
                "No identifiqué ese horario. Elegí uno del listado:",
                menu=build_slot_menu(self.data.pending_slots),
            )

        match self.data.intent:
            case ConversationIntent.RESCHEDULE:
                return self.request_reschedule(slot)
            case ConversationIntent.BOOK | None:
                return self.request_booking(slot)
            case _:
                return stale_reset()

    def back_to_days(self) -> HandledResult:
        if not self.data.pending_days:
            return show_booking_menu("Volvemos al menú principal.", state_data=menu_memory(self.data))
        return HandledResult(
            reply="Seleccioná otro día:",
            menu=build_day_menu(self.data.pending_days),
            next_state=ConversationState.BOOKING_CHOOSE_DAY,
            state_data=self.data.model_copy(
                update={"pending_slots": [], "selected_day_iso": None}
            ),
        )

    def request_booking(self, slot: SlotOption) -> HandledResult:
        reason_on_file = bool((self.patient.consult_reason or "").strip())
        if self.data.require_fresh_reason is False and reason_on_file:
            return HandledResult(
                reply=f"Perfecto, confirmo el turno {slot.label}.",
                next_state=ConversationState.BOOKING_MENU,
                state_data=None,
                booking_request=BookingRequest(
                    type="book", slot_iso=slot.start_iso, slot_label=slot.label
                ),
            )

        return HandledResult(
            reply=(
                "Antes de confirmar el turno necesito que me cuentes el motivo de esta consulta. "
                "Escribilo en pocas palabras."
            ),
            next_state=ConversationState.PROFILE_REASON,
            state_data=self.data.model_copy(
                update={
                    "intent": ConversationIntent.BOOK,
                    "pending_reason_slot": PendingReasonSlot(
                        slot_iso=slot.start_iso, slot_label=slot.label
                    ),
                    "require_fresh_reason": True,
                }
            ),
        )

    def request_reschedule(self, slot: SlotOption) -> HandledResult:
        appointment_id = self.data.reschedule_appointment_id
        if appointment_id is None:
            return stale_reset()
        return HandledResult(
            reply=f"Perfecto, preparo el cambio al turno {slot.label}.",
            next_state=ConversationState.BOOKING_MENU,
            state_data=None,
            booking_request=BookingRequest(
                type="reschedule",
                slot_iso=slot.start_iso,
                slot_label=slot.label,
                appointment_id=appointment_id,
            ),
        )
