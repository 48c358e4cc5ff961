"""
Upload mode handler (UPLOAD_WAITING).

Files themselves are received by the messaging layer; this state only keeps
the customer informed until they go back to the menu.
"""

from conversation.fsm.booking_actions import MENU_REPLY, UPLOAD_INSTRUCTIONS, show_booking_menu
from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.models import ConversationFlowResult, ConversationState, HandledResult
from conversation.utils.matching import is_back_command, is_menu_keyword


class UploadHandler(FlowHandler):
    state = ConversationState.UPLOAD_WAITING

    async def handle(self, text: str) -> ConversationFlowResult:
        if is_menu_keyword(text) or is_back_command(text):
            return show_booking_menu(MENU_REPLY)
        return HandledResult(
            reply=UPLOAD_INSTRUCTIONS,
            next_state=ConversationState.UPLOAD_WAITING,
            state_data=None,
        )
