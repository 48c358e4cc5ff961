"""
Conversation flow dispatcher - entry point of the scheduling engine.

One call handles one inbound message:
1. Gate on business type, empty text and unknown persisted state (UNHANDLED)
2. Rehydrate the working memory and resolve the effective state
3. Intercept generic acknowledgements and open-ended questions
4. Dispatch to the handler that owns the resolved state

The engine performs no I/O besides the optional DNI lookup; the returned
result describes what the caller should persist and send.
"""

import logging
from typing import assert_never

from conversation.fsm.booking_actions import stale_reset
from conversation.fsm.handlers import (
    AddressHandler,
    BirthDateHandler,
    BookingMenuHandler,
    ChooseDayHandler,
    ChooseSlotHandler,
    ConfirmationHandler,
    ConsultReasonHandler,
    DniHandler,
    FlowHandler,
    FreeChatHandler,
    InsuranceHandler,
    NameHandler,
    ProfileMenuHandler,
    UploadHandler,
    WelcomeHandler,
)
from conversation.fsm.models import (
    ONBOARDING_STATES,
    UNHANDLED,
    ConversationContext,
    ConversationFlowResult,
    ConversationState,
    ConversationStateData,
    HandledResult,
    coerce_state,
)
from conversation.fsm.state_resolver import resolve_state
from conversation.utils.matching import (
    build_acknowledgement_reply,
    is_generic_acknowledgement,
    should_defer_to_agent,
)
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_STATES = frozenset({ConversationState.BOOKING_MENU, ConversationState.FREE_CHAT})


def handler_for_state(state: ConversationState) -> type[FlowHandler]:
    """Handler class that owns a state."""
    match state:
        case ConversationState.WELCOME:
            return WelcomeHandler
        case ConversationState.PROFILE_MENU:
            return ProfileMenuHandler
        case ConversationState.PROFILE_DNI:
            return DniHandler
        case ConversationState.PROFILE_NAME:
            return NameHandler
        case ConversationState.PROFILE_BIRTHDATE:
            return BirthDateHandler
        case ConversationState.PROFILE_ADDRESS:
            return AddressHandler
        case ConversationState.PROFILE_INSURANCE:
            return InsuranceHandler
        case ConversationState.PROFILE_REASON:
            return ConsultReasonHandler
        case ConversationState.BOOKING_MENU:
            return BookingMenuHandler
        case ConversationState.BOOKING_CHOOSE_DAY:
            return ChooseDayHandler
        case ConversationState.BOOKING_CHOOSE_SLOT:
            return ChooseSlotHandler
        case ConversationState.BOOKING_CONFIRM:
            return ConfirmationHandler
        case ConversationState.UPLOAD_WAITING:
            return UploadHandler
        case ConversationState.FREE_CHAT:
            return FreeChatHandler
        case _:
            assert_never(state)


class ConversationFlow:
    """
    Scheduling dialogue state machine.

    Example:
        >>> flow = ConversationFlow()
        >>> result = await flow.handle(context)
        >>> if result.handled:
        ...     send(result.reply)
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def handle(self, context: ConversationContext) -> ConversationFlowResult:
        """
        Produce the result for one inbound message.

        Args:
            context: Inbound text plus the snapshot of the customer record,
                calendar availability and active appointment

        Returns:
            HandledResult with reply, next state and side-effect requests, or
            UNHANDLED when the message belongs to the AI agent
        """
        patient = context.patient
        log_extra = {"patient_id": patient.id, "business_type": context.business_type}

        if context.business_type.upper() not in self.settings.flow_business_types:
            logger.debug(
                f"Business type not served by the flow | business_type={context.business_type}",
                extra=log_extra,
            )
            return UNHANDLED

        text = (context.incoming_text or "").strip()
        if not text:
            return UNHANDLED

        persisted = coerce_state(patient.conversation_state)
        if persisted is None:
            logger.warning(
                f"Unknown persisted conversation state | patient_id={patient.id} | "
                f"state={patient.conversation_state!r}",
                extra=log_extra,
            )
            return UNHANDLED

        state_data = ConversationStateData.from_raw(patient.conversation_state_data)
        state = resolve_state(patient, state_data)
        if state is None:
            return UNHANDLED
        log_extra["conversation_state"] = state.value

        profile_complete = not patient.has_pending_fields

        if (
            state in ACKNOWLEDGEMENT_STATES
            and profile_complete
            and is_generic_acknowledgement(text)
        ):
            return HandledResult(
                reply=build_acknowledgement_reply(text),
                next_state=state,
                state_data=None if state_data.is_empty() else state_data,
            )

        if (
            state not in ONBOARDING_STATES
            and state is not ConversationState.UPLOAD_WAITING
            and profile_complete
            and should_defer_to_agent(text)
        ):
            logger.info(
                f"Deferring message to the AI agent | patient_id={patient.id} | state={state.value}",
                extra=log_extra,
            )
            return UNHANDLED

        if (
            persisted is ConversationState.BOOKING_CHOOSE_SLOT
            and state is ConversationState.BOOKING_MENU
        ):
            logger.warning(
                f"Slot list missing from working memory, resetting to menu | patient_id={patient.id}",
                extra=log_extra,
            )
            result = stale_reset()
        else:
            handler = handler_for_state(state)(context, state_data, self.settings)
            try:
                result = await handler.handle(text)
            except Exception as e:
                logger.error(
                    f"Flow handler failed, deferring to the AI agent | patient_id={patient.id} | "
                    f"state={state.value}: {e}",
                    exc_info=True,
                    extra=log_extra,
                )
                return UNHANDLED

        if isinstance(result, HandledResult):
            logger.info(
                f"Conversation transition | patient_id={patient.id} | "
                f"{state.value} -> {result.next_state.value}",
                extra={**log_extra, "next_state": result.next_state.value},
            )
        return result


async def handle_conversation_flow(
    context: ConversationContext,
    settings: Settings | None = None,
) -> ConversationFlowResult:
    """Handle one inbound message with a ConversationFlow."""
    return await ConversationFlow(settings).handle(context)
