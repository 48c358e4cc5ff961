"""
Profile Gate - mandatory profile checks before booking.

Booking is only offered once the customer's record has every mandatory field.
The gate walks the fields in onboarding order and stops at the first unmet
one, asking for exactly that field.
"""

import logging
from typing import ClassVar

from conversation.fsm.models import (
    PROFILE_FIELD_STATES,
    ConversationContext,
    ConversationIntent,
    ConversationStateData,
    HandledResult,
    PatientSnapshot,
    ProfileField,
)
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)


class FieldPrompts:
    """Questions asked for each profile field, by situation."""

    # Booking was requested but the field is missing
    GATE: ClassVar[dict[ProfileField, str]] = {
        ProfileField.DNI: "Antes de continuar necesito tu DNI (solo números).",
        ProfileField.NAME: "Para avanzar con el turno necesito tu nombre completo (ej: Ana Pérez).",
        ProfileField.BIRTH_DATE: "También necesito tu fecha de nacimiento (ej: 31/12/1990).",
        ProfileField.ADDRESS: "Antes de ofrecer turnos necesito tu dirección (calle y número).",
        ProfileField.INSURANCE: "¿Tenés obra social o prepaga? Decime el nombre exacto para registrarlo.",
        ProfileField.CONSULT_REASON: "Contame brevemente el motivo de la consulta.",
    }

    # Next question after a field was saved
    NEXT: ClassVar[dict[ProfileField, str]] = {
        ProfileField.DNI: "Necesito tu DNI para ubicar o crear tu ficha. Por ejemplo: 12345678.",
        ProfileField.NAME: "Ahora necesito tu nombre y apellido completos (ej: Ana Pérez).",
        ProfileField.BIRTH_DATE: "¿Cuál es tu fecha de nacimiento? (ej: 31/12/1990)",
        ProfileField.ADDRESS: "Ahora decime tu dirección (calle y número).",
        ProfileField.INSURANCE: "¿Tenés obra social o prepaga? Contame cuál.",
        ProfileField.CONSULT_REASON: "Contame brevemente el motivo de tu consulta.",
    }

    # Greeting for a customer whose record was found by DNI
    RETURNING: ClassVar[dict[ProfileField, str]] = {
        ProfileField.NAME: "Necesito confirmar tu nombre completo (ej: Ana Pérez).",
        ProfileField.BIRTH_DATE: "¿Me recordás tu fecha de nacimiento? (DD/MM/AAAA)",
        ProfileField.ADDRESS: "Decime tu dirección (calle y número) para actualizar tu ficha.",
        ProfileField.INSURANCE: "¿Seguís con la misma obra social o prepaga? ¿Cuál es?",
        ProfileField.CONSULT_REASON: "Contame brevemente el motivo de la consulta.",
    }


def gated_fields(business_type: str, settings: Settings | None = None) -> tuple[ProfileField, ...]:
    """
    Fields the gate checks for a business type.

    Insurance is only mandatory for coverage-requiring businesses. The consult
    reason is collected per booking, after the slot is chosen.
    """
    settings = settings or get_settings()
    fields = [ProfileField.DNI, ProfileField.NAME, ProfileField.BIRTH_DATE, ProfileField.ADDRESS]
    if business_type.upper() in settings.coverage_business_types:
        fields.append(ProfileField.INSURANCE)
    return tuple(fields)


def first_missing_field(
    patient: PatientSnapshot,
    business_type: str,
    settings: Settings | None = None,
) -> ProfileField | None:
    for profile_field in gated_fields(business_type, settings):
        if patient.needs(profile_field):
            return profile_field
    return None


def gate_profile_for_booking(
    context: ConversationContext,
    state_data: ConversationStateData,
    settings: Settings | None = None,
) -> HandledResult | None:
    """
    Check mandatory profile fields before offering booking.

    Args:
        context: Invocation context (patient snapshot and business type)
        state_data: Current working memory
        settings: Settings override (default: get_settings())

    Returns:
        HandledResult asking for the first unmet field, with the working
        memory kept and intent set to "book" so booking resumes once the
        profile is complete. None when every field passes.
    """
    missing = first_missing_field(context.patient, context.business_type, settings)
    if missing is None:
        return None

    logger.info(
        f"Booking gated on profile field | patient_id={context.patient.id} | field={missing.value}",
        extra={"patient_id": context.patient.id, "business_type": context.business_type},
    )
    return HandledResult(
        reply=FieldPrompts.GATE[missing],
        next_state=PROFILE_FIELD_STATES[missing],
        state_data=state_data.model_copy(update={"intent": ConversationIntent.BOOK}),
    )
