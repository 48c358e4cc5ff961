"""
Booking menu branches shared by several states.

The booking menu (A/B/C/D) and the quick intents recognized mid-flow lead to
the same four actions. They live here so every state enters them the same
way:
- start_booking(): profile gate, then the day list
- start_reschedule(): active appointment check, then the day list
- start_cancellation(): active appointment check, then confirmation
- start_upload(): complete profile check, then upload mode
"""

import logging
from dataclasses import replace

from conversation.fsm.menus import build_booking_menu, build_day_menu
from conversation.fsm.models import (
    PROFILE_FIELD_STATES,
    ConversationContext,
    ConversationIntent,
    ConversationState,
    ConversationStateData,
    HandledResult,
    PatientProfilePatch,
    QuickIntent,
)
from conversation.fsm.profile_gate import FieldPrompts, gate_profile_for_booking
from conversation.utils.calendar import build_day_options
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

MENU_REPLY = "Estas son las opciones disponibles:"
STALE_REPLY = "Reinicio el menú para que puedas elegir otra vez."
UPLOAD_INSTRUCTIONS = (
    "Enviame tus archivos o imágenes (fotos, PDFs, documentos). Podés mandar varios "
    "seguidos. Cuando termines, escribí “menu” para volver."
)


def menu_memory(state_data: ConversationStateData | None) -> ConversationStateData | None:
    """
    Working memory that survives a return to the booking menu.

    Only the "reason already given" flag is kept: set explicitly, or implied
    by a booking flow that did not ask for a fresh reason.
    """
    if state_data is None:
        return None
    satisfied = state_data.onboarding_reason_satisfied or (
        state_data.intent is ConversationIntent.BOOK and state_data.require_fresh_reason is False
    )
    if satisfied:
        return ConversationStateData(onboarding_reason_satisfied=True)
    return None


def show_booking_menu(
    reply: str = MENU_REPLY,
    state_data: ConversationStateData | None = None,
    patch: PatientProfilePatch | None = None,
) -> HandledResult:
    """Booking menu result. Empty working memory is persisted as None."""
    if state_data is not None and state_data.is_empty():
        state_data = None
    return HandledResult(
        reply=reply,
        menu=build_booking_menu(),
        next_state=ConversationState.BOOKING_MENU,
        state_data=state_data,
        patient_profile_patch=patch,
    )


def stale_reset() -> HandledResult:
    """Reset after the working memory referenced options that no longer exist."""
    return show_booking_menu(STALE_REPLY)


def _join(lead_in: str | None, reply: str) -> str:
    return f"{lead_in} {reply}" if lead_in else reply


def start_booking(
    context: ConversationContext,
    state_data: ConversationStateData,
    settings: Settings | None = None,
    lead_in: str | None = None,
    patch: PatientProfilePatch | None = None,
) -> HandledResult:
    """
    Branch A: offer the day list for a new appointment.

    Args:
        context: Invocation context
        state_data: Current working memory
        settings: Settings override
        lead_in: Text placed before the day prompt (e.g., onboarding thanks)
        patch: Profile patch produced earlier in the same turn; the gate
            checks the profile as it will look once the patch is applied

    Returns:
        Profile gate prompt, a "no availability" notice, or the day list
        (BOOKING_CHOOSE_DAY with intent=book)
    """
    settings = settings or get_settings()
    if patch is not None:
        context = replace(context, patient=context.patient.with_patch(patch))

    gated = gate_profile_for_booking(context, state_data, settings)
    if gated is not None:
        return gated.model_copy(
            update={"reply": _join(lead_in, gated.reply), "patient_profile_patch": patch}
        )

    days = build_day_options(context.available_slots, context.timezone)
    if not days:
        return show_booking_menu(
            _join(
                lead_in,
                "Por ahora no encuentro turnos disponibles. "
                "Avisame si querés que te avise cuando se libere uno.",
            ),
            state_data=menu_memory(state_data),
            patch=patch,
        )

    return HandledResult(
        reply=_join(lead_in, "Elegí el día que te resulte cómodo:"),
        menu=build_day_menu(days),
        next_state=ConversationState.BOOKING_CHOOSE_DAY,
        state_data=ConversationStateData(
            intent=ConversationIntent.BOOK,
            pending_days=days,
            require_fresh_reason=not state_data.onboarding_reason_satisfied,
        ),
        patient_profile_patch=patch,
    )


def start_reschedule(
    context: ConversationContext,
    state_data: ConversationStateData,
) -> HandledResult:
    """Branch B: offer the day list for moving the active appointment."""
    appointment = context.active_appointment
    if appointment is None:
        return show_booking_menu(
            "No encuentro turnos confirmados para reprogramar. "
            "Si querés sacar uno nuevo, elegí “📅 Sacar nuevo turno”.",
            state_data=menu_memory(state_data),
        )

    days = build_day_options(context.available_slots, context.timezone)
    if not days:
        return show_booking_menu(
            "Por ahora no hay horarios alternativos. En cuanto se libere algo te aviso.",
            state_data=menu_memory(state_data),
        )

    return HandledResult(
        reply=f"Tu turno actual es {appointment.human_label}. Elegí el nuevo día que te sirva:",
        menu=build_day_menu(days),
        next_state=ConversationState.BOOKING_CHOOSE_DAY,
        state_data=ConversationStateData(
            intent=ConversationIntent.RESCHEDULE,
            pending_days=days,
            reschedule_appointment_id=appointment.id,
        ),
    )


def start_cancellation(
    context: ConversationContext,
    state_data: ConversationStateData,
) -> HandledResult:
    """Branch C: ask to confirm cancelling the active appointment."""
    appointment = context.active_appointment
    if appointment is None:
        return show_booking_menu(
            "No tenés turnos para cancelar. ¿Querés sacar uno nuevo?",
            state_data=menu_memory(state_data),
        )

    return HandledResult(
        reply=(
            f"Tu turno actual es {appointment.human_label}. ¿Confirmás que querés cancelarlo? "
            'Respondé "Sí" para confirmar o "No" para volver al menú.'
        ),
        next_state=ConversationState.BOOKING_CONFIRM,
        state_data=ConversationStateData(
            intent=ConversationIntent.CANCEL,
            reschedule_appointment_id=appointment.id,
        ),
    )


def start_upload(context: ConversationContext) -> HandledResult:
    """
    Branch D: switch to upload mode.

    Requires a complete profile; otherwise the customer is sent to the first
    missing field.
    """
    pending = context.patient.pending_fields()
    if pending:
        missing = pending[0]
        return HandledResult(
            reply=(
                "Para subir documentos primero necesito completar tu ficha. "
                f"{FieldPrompts.GATE[missing]}"
            ),
            next_state=PROFILE_FIELD_STATES[missing],
            state_data=None,
        )

    return HandledResult(
        reply=(
            "Perfecto. Enviame tus archivos o imágenes (estudios, recetas, documentos) como "
            "foto o PDF. Podés mandar varios seguidos. Cuando termines, escribí “menu” para volver."
        ),
        next_state=ConversationState.UPLOAD_WAITING,
        state_data=None,
    )


def resolve_quick_intent(
    intent: QuickIntent,
    context: ConversationContext,
    state_data: ConversationStateData,
    settings: Settings | None = None,
) -> HandledResult:
    """
    Re-enter the booking menu branch for a mid-flow quick intent.

    A new booking keeps the "reason already given" flag only while the
    current flow did not ask for a fresh reason.
    """
    logger.info(
        f"Quick intent | patient_id={context.patient.id} | intent={intent.value}",
        extra={"patient_id": context.patient.id},
    )
    match intent:
        case QuickIntent.MENU:
            return show_booking_menu()
        case QuickIntent.BOOK:
            carried = menu_memory(state_data) or ConversationStateData()
            return start_booking(context, carried, settings)
        case QuickIntent.RESCHEDULE:
            return start_reschedule(context, ConversationStateData())
        case QuickIntent.CANCEL:
            return start_cancellation(context, ConversationStateData())
