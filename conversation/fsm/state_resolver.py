"""
State resolution: which handler owns the next message.

The persisted state is a hint, not the truth. Profile completeness and the
working memory can override it.
"""

from conversation.fsm.models import (
    PROFILE_FIELD_STATES,
    ConversationState,
    ConversationStateData,
    PatientSnapshot,
    coerce_state,
)


def resolve_state(
    patient: PatientSnapshot,
    state_data: ConversationStateData,
) -> ConversationState | None:
    """
    Resolve the effective state for the incoming message.

    Precedence:
    1. Persisted WELCOME stays WELCOME (first contact always gets the greeting)
    2. First unmet profile field forces its PROFILE_* state
    3. BOOKING_CHOOSE_SLOT without pending slots falls back to BOOKING_MENU
    4. Otherwise the persisted state

    Returns:
        The effective state, or None if the persisted value is unknown
    """
    persisted = coerce_state(patient.conversation_state)
    if persisted is None:
        return None
    if persisted is ConversationState.WELCOME:
        return persisted

    pending = patient.pending_fields()
    if pending:
        return PROFILE_FIELD_STATES[pending[0]]

    if persisted is ConversationState.BOOKING_CHOOSE_SLOT and not state_data.pending_slots:
        return ConversationState.BOOKING_MENU

    return persisted
