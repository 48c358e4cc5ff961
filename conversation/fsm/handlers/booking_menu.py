"""
Booking menu handler (BOOKING_MENU) and the entry states that show it.

The menu offers four options:
- A: book a new appointment
- B: reschedule the active appointment
- C: cancel the active appointment
- D: upload documents

Options are matched by letter, number (1-4) or keyword, and the shared quick
intents map onto the same branches.
"""

import logging
from typing import ClassVar

from conversation.fsm.booking_actions import (
    MENU_REPLY,
    menu_memory,
    show_booking_menu,
    start_booking,
    start_cancellation,
    start_reschedule,
    start_upload,
)
from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.menus import (
    BOOKING_MENU_OPTIONS,
    BOOKING_OPTION_BOOK,
    BOOKING_OPTION_CANCEL,
    BOOKING_OPTION_RESCHEDULE,
    BOOKING_OPTION_UPLOAD,
)
from conversation.fsm.models import (
    UNHANDLED,
    ConversationFlowResult,
    ConversationState,
    ConversationStateData,
    QuickIntent,
)
from conversation.utils.matching import (
    classify_quick_intent,
    is_back_command,
    is_menu_keyword,
    is_upload_request,
    match_option,
)

logger = logging.getLogger(__name__)

WELCOME_REPLY = (
    "¡Hola! Soy el asistente del consultorio. "
    "Contame si querés sacar, reprogramar o cancelar un turno."
)


class BookingMenuHandler(FlowHandler):
    """BOOKING_MENU: route the customer's choice to its branch."""

    state = ConversationState.BOOKING_MENU

    QUICK_INTENT_OPTIONS: ClassVar[dict[QuickIntent, str]] = {
        QuickIntent.BOOK: BOOKING_OPTION_BOOK,
        QuickIntent.RESCHEDULE: BOOKING_OPTION_RESCHEDULE,
        QuickIntent.CANCEL: BOOKING_OPTION_CANCEL,
    }

    async def handle(self, text: str) -> ConversationFlowResult:
        if is_menu_keyword(text):
            return show_booking_menu(MENU_REPLY)
        if is_back_command(text):
            return show_booking_menu(MENU_REPLY, state_data=menu_memory(self.data))

        choice = self.choose_option(text)
        if choice is None:
            return show_booking_menu(
                "No entendí la opción. Respondé con la letra indicada (A, B, C o D):",
                state_data=menu_memory(self.data),
            )

        logger.info(
            f"Booking menu choice | patient_id={self.patient.id} | option={choice}",
            extra={"patient_id": self.patient.id, "conversation_state": self.state.value},
        )
        match choice:
            case "A":
                carried = menu_memory(self.data) or ConversationStateData()
                return start_booking(self.context, carried, self.settings)
            case "B":
                return start_reschedule(self.context, self.data)
            case "C":
                return start_cancellation(self.context, self.data)
            case "D":
                return start_upload(self.context)
            case _:
                raise ValueError(f"Unknown booking menu option: {choice}")

    def choose_option(self, text: str) -> str | None:
        """Menu letter for the reply: option id/alias first, then quick intents."""
        option = match_option(text, BOOKING_MENU_OPTIONS)
        if option is not None:
            return option.id
        intent = classify_quick_intent(text)
        if intent in self.QUICK_INTENT_OPTIONS:
            return self.QUICK_INTENT_OPTIONS[intent]
        if is_upload_request(text):
            return BOOKING_OPTION_UPLOAD
        return None


class WelcomeHandler(FlowHandler):
    """WELCOME: first contact. Greets and shows the booking menu."""

    state = ConversationState.WELCOME

    async def handle(self, text: str) -> ConversationFlowResult:
        return show_booking_menu(WELCOME_REPLY)


class ProfileMenuHandler(FlowHandler):
    """PROFILE_MENU: legacy persisted value, answered with the booking menu."""

    state = ConversationState.PROFILE_MENU

    async def handle(self, text: str) -> ConversationFlowResult:
        return show_booking_menu(MENU_REPLY)


class FreeChatHandler(FlowHandler):
    """FREE_CHAT: the AI agent owns the conversation until "menu" is typed."""

    state = ConversationState.FREE_CHAT

    async def handle(self, text: str) -> ConversationFlowResult:
        if is_menu_keyword(text):
            return show_booking_menu(MENU_REPLY)
        return UNHANDLED
