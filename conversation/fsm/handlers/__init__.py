"""
Per-state flow handlers.

Each handler owns one ConversationState:
- booking_menu: WELCOME, PROFILE_MENU, BOOKING_MENU, FREE_CHAT
- onboarding: PROFILE_DNI ... PROFILE_REASON
- selection: BOOKING_CHOOSE_DAY, BOOKING_CHOOSE_SLOT
- confirmation: BOOKING_CONFIRM
- upload: UPLOAD_WAITING
"""

from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.handlers.booking_menu import (
    BookingMenuHandler,
    FreeChatHandler,
    ProfileMenuHandler,
    WelcomeHandler,
)
from conversation.fsm.handlers.confirmation import ConfirmationHandler
from conversation.fsm.handlers.onboarding import (
    AddressHandler,
    BirthDateHandler,
    ConsultReasonHandler,
    DniHandler,
    InsuranceHandler,
    NameHandler,
)
from conversation.fsm.handlers.selection import ChooseDayHandler, ChooseSlotHandler
from conversation.fsm.handlers.upload import UploadHandler

__all__ = [
    "FlowHandler",
    "AddressHandler",
    "BirthDateHandler",
    "BookingMenuHandler",
    "ChooseDayHandler",
    "ChooseSlotHandler",
    "ConfirmationHandler",
    "ConsultReasonHandler",
    "DniHandler",
    "FreeChatHandler",
    "InsuranceHandler",
    "NameHandler",
    "ProfileMenuHandler",
    "UploadHandler",
    "WelcomeHandler",
]
