"""
Conversational scheduling engine.

Turns one inbound customer message into the next conversation state, a reply
and at most one side-effect request (profile patch, booking, cancellation or
record merge). Usage:

    from conversation import ConversationContext, handle_conversation_flow

    result = await handle_conversation_flow(context)
    if result.handled:
        payload = result.to_payload()
"""

from conversation.fsm.dispatcher import ConversationFlow, handle_conversation_flow
from conversation.fsm.models import (
    UNHANDLED,
    AppointmentSummary,
    BookingRequest,
    BusinessType,
    CalendarSlot,
    CancelRequest,
    ConversationContext,
    ConversationFlowResult,
    ConversationIntent,
    ConversationState,
    ConversationStateData,
    HandledResult,
    MenuOption,
    MenuTemplate,
    MergeInstruction,
    PatientMatch,
    PatientProfilePatch,
    PatientSnapshot,
    UnhandledResult,
)
from conversation.rendering import append_menu_hint, format_menu_message

__all__ = [
    # Entry points
    "ConversationFlow",
    "handle_conversation_flow",
    # Models
    "UNHANDLED",
    "AppointmentSummary",
    "BookingRequest",
    "BusinessType",
    "CalendarSlot",
    "CancelRequest",
    "ConversationContext",
    "ConversationFlowResult",
    "ConversationIntent",
    "ConversationState",
    "ConversationStateData",
    "HandledResult",
    "MenuOption",
    "MenuTemplate",
    "MergeInstruction",
    "PatientMatch",
    "PatientProfilePatch",
    "PatientSnapshot",
    "UnhandledResult",
    # Rendering
    "append_menu_hint",
    "format_menu_message",
]
