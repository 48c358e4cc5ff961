"""
Cancellation confirmation handler (BOOKING_CONFIRM).
"""

import logging

from conversation.fsm.booking_actions import show_booking_menu
from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.models import (
    CancelRequest,
    ConversationFlowResult,
    ConversationIntent,
    ConversationState,
    HandledResult,
)
from conversation.utils.matching import is_affirmative, is_back_command, is_negative

logger = logging.getLogger(__name__)


class ConfirmationHandler(FlowHandler):
    """
    BOOKING_CONFIRM: confirm cancelling the active appointment.

    Negative answers and back commands abort to the menu, affirmative answers
    emit the cancel request, anything else asks again.
    """

    state = ConversationState.BOOKING_CONFIRM

    async def handle(self, text: str) -> ConversationFlowResult:
        appointment_id = self.data.reschedule_appointment_id
        if self.data.intent is not ConversationIntent.CANCEL or appointment_id is None:
            return show_booking_menu("Retomo el menú principal.")

        if is_negative(text) or is_back_command(text):
            return show_booking_menu("No cancelé nada. Estas son las opciones disponibles:")

        if is_affirmative(text):
            logger.info(
                f"Cancellation confirmed | patient_id={self.patient.id} | "
                f"appointment_id={appointment_id}",
                extra={"patient_id": self.patient.id, "conversation_state": self.state.value},
            )
            return HandledResult(
                reply="Perfecto, confirmo la cancelación.",
                next_state=ConversationState.BOOKING_MENU,
                state_data=None,
                cancel_request=CancelRequest(appointment_id=appointment_id),
            )

        return self.reprompt("¿Confirmás la cancelación? Respondé Sí o No.")
