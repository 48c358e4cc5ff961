"""
Onboarding handlers (PROFILE_DNI ... PROFILE_REASON).

Every onboarding state follows the same shape:
1. Bare "menu" restarts onboarding (DNI is never asked again)
2. Replies that look like a booking menu choice are not answers: re-prompt
3. Parse the answer; on failure re-prompt, on success patch the profile and
   advance to the next unmet field of the patched profile

Once the last field is saved, a pending booking intent resumes at the day
list; otherwise the booking menu is shown.
"""

import logging
from typing import ClassVar

from pydantic import ValidationError

from conversation.fsm.booking_actions import MENU_REPLY, show_booking_menu, start_booking
from conversation.fsm.handlers.base import FlowHandler
from conversation.fsm.menus import build_booking_menu, build_slot_menu
from conversation.fsm.models import (
    PROFILE_FIELD_STATES,
    BookingRequest,
    ConversationFlowResult,
    ConversationIntent,
    ConversationState,
    ConversationStateData,
    HandledResult,
    MergeInstruction,
    PatientMatch,
    PatientProfilePatch,
    ProfileField,
)
from conversation.fsm.profile_gate import FieldPrompts
from conversation.utils.matching import (
    is_back_command,
    is_bare_menu_keyword,
    is_explicit_menu_selection,
)
from conversation.utils.text import format_consult_reason_answer, normalize_insurance_answer
from conversation.validators.profile_validators import (
    parse_address,
    parse_birth_date_answer,
    parse_dni,
    parse_full_name,
)

logger = logging.getLogger(__name__)

RESTART_REPLY = (
    "Listo, volvemos al menú y reiniciamos el registro. Cuando quieras, arrancamos de nuevo."
)


def first_name(full_name: str | None) -> str:
    """First word of a full name, "paciente" when unknown."""
    words = (full_name or "").split()
    return words[0] if words else "paciente"


class ProfileFieldHandler(FlowHandler):
    """
    Shared behavior of the onboarding states.

    Subclasses set the field and its prompts, and implement parse().
    """

    field: ClassVar[ProfileField]
    NON_ANSWER_PROMPT: ClassVar[str]
    INVALID_PROMPT: ClassVar[str]

    async def handle(self, text: str) -> ConversationFlowResult:
        if is_bare_menu_keyword(text):
            return self.restart_onboarding()
        if is_explicit_menu_selection(text):
            return self.reprompt(self.non_answer_prompt())
        return await self.answer(text)

    async def answer(self, text: str) -> ConversationFlowResult:
        patch = self.parse(text)
        if patch is None:
            return self.reprompt(self.INVALID_PROMPT)
        return self.advance(patch, self.acknowledgement(patch))

    def parse(self, text: str) -> PatientProfilePatch | None:
        raise NotImplementedError

    def acknowledgement(self, patch: PatientProfilePatch) -> str:
        return "Gracias."

    def non_answer_prompt(self) -> str:
        return self.NON_ANSWER_PROMPT

    def restart_onboarding(self) -> HandledResult:
        """
        Start the registration over and go back to the booking menu.

        Re-arms name, birth date and address. Insurance and consult reason are
        re-armed for coverage-requiring businesses and keep their current flag
        otherwise. With no field pending this is just the booking menu.
        """
        patient = self.patient
        if not patient.has_pending_fields:
            return show_booking_menu(MENU_REPLY)

        requires_coverage = (
            self.context.business_type.upper() in self.settings.coverage_business_types
        )
        patch = PatientProfilePatch(
            needs_name=True,
            needs_birth_date=True,
            needs_address=True,
            needs_insurance=True if requires_coverage else patient.needs_insurance,
            needs_consult_reason=True if requires_coverage else patient.needs_consult_reason,
            birth_date=None,
            address=None,
        )
        if requires_coverage or patient.needs_insurance:
            patch.insurance_provider = None
        if requires_coverage or patient.needs_consult_reason:
            patch.consult_reason = None
        if not patient.needs_name and patient.full_name:
            patch.full_name = self.settings.PLACEHOLDER_PATIENT_NAME

        logger.info(
            f"Onboarding restarted | patient_id={patient.id} | state={self.state.value}",
            extra={"patient_id": patient.id, "conversation_state": self.state.value},
        )
        return show_booking_menu(RESTART_REPLY, patch=patch)

    def advance(
        self,
        patch: PatientProfilePatch,
        acknowledgement: str,
        reason_collected: bool = False,
    ) -> HandledResult:
        """
        Move to the next unmet field of the patched profile.

        Args:
            patch: Profile updates produced by this answer
            acknowledgement: Thanks text placed before the next question
            reason_collected: The consult reason was saved in this onboarding pass

        Returns:
            Next field prompt, the resumed booking (day list) when the working
            memory carries intent=book, or the booking menu
        """
        pending = self.patient.with_patch(patch).pending_fields()
        if pending:
            next_field = pending[0]
            return HandledResult(
                reply=f"{acknowledgement} {FieldPrompts.NEXT[next_field]}",
                next_state=PROFILE_FIELD_STATES[next_field],
                state_data=self.memory,
                patient_profile_patch=patch,
            )

        satisfied = reason_collected or bool(self.data.onboarding_reason_satisfied)
        carried = ConversationStateData(onboarding_reason_satisfied=True if satisfied else None)
        if self.data.intent is ConversationIntent.BOOK:
            return start_booking(
                self.context, carried, self.settings, lead_in=acknowledgement, patch=patch
            )
        return show_booking_menu(
            f"{acknowledgement} Elegí una opción para continuar:",
            state_data=carried,
            patch=patch,
        )


class DniHandler(ProfileFieldHandler):
    """
    PROFILE_DNI: national id.

    When the id already belongs to another record, the result asks the store
    to merge this conversation into that record and continues with the
    other record's first pending field.
    """

    state = ConversationState.PROFILE_DNI
    field = ProfileField.DNI
    NON_ANSWER_PROMPT = "Necesito tu DNI para ubicar o crear tu ficha. Por ejemplo: 12345678."
    INVALID_PROMPT = "No pude reconocer el DNI. Enviame solo los números, por ejemplo 12345678."

    async def answer(self, text: str) -> ConversationFlowResult:
        dni = parse_dni(text, self.settings.DNI_MIN_DIGITS, self.settings.DNI_MAX_DIGITS)
        if dni is None:
            return self.reprompt(self.INVALID_PROMPT)

        patch = PatientProfilePatch(dni=dni, needs_dni=False)
        existing = await self.find_existing(dni)
        if existing is not None and existing.id != self.patient.id:
            return self.offer_merge(existing, patch)
        return self.advance(patch, "Perfecto.")

    async def find_existing(self, dni: str) -> PatientMatch | None:
        """Look up another record with the same DNI. Lookup errors count as no match."""
        lookup = self.context.find_patient_by_dni
        if lookup is None:
            return None
        try:
            found = await lookup(dni)
            if found is None or isinstance(found, PatientMatch):
                return found
            return PatientMatch.model_validate(found)
        except ValidationError as e:
            logger.error(
                f"Invalid patient returned by DNI lookup | patient_id={self.patient.id}: {e}",
                extra={"patient_id": self.patient.id},
            )
            return None
        except Exception as e:
            logger.error(
                f"DNI lookup failed | patient_id={self.patient.id}: {e}",
                exc_info=True,
                extra={"patient_id": self.patient.id},
            )
            return None

    def offer_merge(self, existing: PatientMatch, patch: PatientProfilePatch) -> HandledResult:
        name = first_name(existing.full_name)
        merge = MergeInstruction(target_patient_id=existing.id)
        pending = [f for f in existing.pending_fields() if f is not ProfileField.DNI]

        logger.info(
            f"DNI matches another record | patient_id={self.patient.id} | "
            f"target_patient_id={existing.id}",
            extra={"patient_id": self.patient.id},
        )
        if not pending:
            return HandledResult(
                reply=f"¡Hola {name}! Ya encontré tu ficha. Elegí una opción para continuar.",
                menu=build_booking_menu(),
                next_state=ConversationState.BOOKING_MENU,
                state_data=None,
                patient_profile_patch=patch,
                merge=merge,
            )

        next_field = pending[0]
        return HandledResult(
            reply=f"¡Hola {name}! {FieldPrompts.RETURNING[next_field]}",
            next_state=PROFILE_FIELD_STATES[next_field],
            state_data=self.memory,
            patient_profile_patch=patch,
            merge=merge,
        )


class NameHandler(ProfileFieldHandler):
    state = ConversationState.PROFILE_NAME
    field = ProfileField.NAME
    NON_ANSWER_PROMPT = (
        "Primero necesito tu nombre y apellido completos (ej: Ana Pérez). "
        "Después seguimos con el menú."
    )
    INVALID_PROMPT = (
        "Necesito tu nombre y apellido completos. Ejemplo: Ana Pérez. ¿Me lo pasás nuevamente?"
    )

    def parse(self, text: str) -> PatientProfilePatch | None:
        full_name = parse_full_name(text)
        if full_name is None:
            return None
        return PatientProfilePatch(full_name=full_name, needs_name=False)

    def acknowledgement(self, patch: PatientProfilePatch) -> str:
        return f"Gracias {first_name(patch.full_name)} 🙌."


class BirthDateHandler(ProfileFieldHandler):
    state = ConversationState.PROFILE_BIRTHDATE
    field = ProfileField.BIRTH_DATE
    NON_ANSWER_PROMPT = "Para continuar necesito tu fecha de nacimiento. Ejemplo: 31/12/1990."
    INVALID_PROMPT = "No pude interpretar la fecha. Escribila como DD/MM/AAAA (ej: 15/08/1987)."

    def parse(self, text: str) -> PatientProfilePatch | None:
        birth_date = parse_birth_date_answer(
            text,
            reference_date=self.context.now,
            year_pivot=self.settings.BIRTH_YEAR_PIVOT,
        )
        if birth_date is None:
            return None
        return PatientProfilePatch(birth_date=birth_date, needs_birth_date=False)


class AddressHandler(ProfileFieldHandler):
    state = ConversationState.PROFILE_ADDRESS
    field = ProfileField.ADDRESS
    NON_ANSWER_PROMPT = "Necesito tu dirección para completar la ficha (ej: Av. Siempre Viva 742)."
    INVALID_PROMPT = "¿Me pasás una dirección válida? Necesito al menos la calle y el número."

    def parse(self, text: str) -> PatientProfilePatch | None:
        address = parse_address(text)
        if address is None:
            return None
        return PatientProfilePatch(address=address, needs_address=False)


class InsuranceHandler(ProfileFieldHandler):
    state = ConversationState.PROFILE_INSURANCE
    field = ProfileField.INSURANCE
    NON_ANSWER_PROMPT = (
        "Necesito que me digas exactamente cuál es tu obra social o si sos particular. "
        "Escribilo tal como aparece en tu credencial."
    )
    INVALID_PROMPT = (
        "¿Tenés obra social? Decime el nombre exacto (por ejemplo: OSDE, Swiss Medical, Particular)."
    )

    def parse(self, text: str) -> PatientProfilePatch | None:
        provider = normalize_insurance_answer(text)
        if provider is None:
            return None
        return PatientProfilePatch(insurance_provider=provider, needs_insurance=False)

    def acknowledgement(self, patch: PatientProfilePatch) -> str:
        return "Perfecto. Ya tengo tu obra social anotada."


class ConsultReasonHandler(ProfileFieldHandler):
    """
    PROFILE_REASON: consult reason.

    Reached either during onboarding or after choosing a slot that needs a
    fresh reason (pendingReasonSlot). In the second case a valid reason
    books the pending slot, and "volver" goes back to the slot list.
    """

    state = ConversationState.PROFILE_REASON
    field = ProfileField.CONSULT_REASON
    NON_ANSWER_PROMPT = (
        "Antes de seguir necesito el motivo de la consulta (ej: control anual, dolor lumbar)."
    )
    INVALID_PROMPT = (
        "Contame en pocas palabras el motivo de la consulta (ej: control anual, dolor de cabeza)."
    )
    PENDING_SLOT_NON_ANSWER_PROMPT = (
        'Antes de continuar necesito el motivo de esta consulta (ej: "control anual"). '
        'Si querés volver al menú escribí "volver".'
    )
    PENDING_SLOT_INVALID_PROMPT = (
        "Necesito el motivo de esta consulta para confirmar el turno. Contalo en pocas palabras "
        '(por ejemplo: "control anual", "dolor lumbar"). Si querés cambiar el horario escribí "volver".'
    )

    def non_answer_prompt(self) -> str:
        if self.data.pending_reason_slot is not None:
            return self.PENDING_SLOT_NON_ANSWER_PROMPT
        return self.NON_ANSWER_PROMPT

    async def answer(self, text: str) -> ConversationFlowResult:
        pending_slot = self.data.pending_reason_slot
        if pending_slot is not None and is_back_command(text):
            return self.back_to_slots()

        patch = self.parse(text)
        if patch is None:
            if pending_slot is not None:
                return self.reprompt(self.PENDING_SLOT_INVALID_PROMPT)
            return self.reprompt(self.INVALID_PROMPT)

        if pending_slot is not None:
            return HandledResult(
                reply=f"Perfecto, confirmo el turno {pending_slot.slot_label}.",
                next_state=ConversationState.BOOKING_MENU,
                state_data=None,
                patient_profile_patch=patch,
                booking_request=BookingRequest(
                    type="book",
                    slot_iso=pending_slot.slot_iso,
                    slot_label=pending_slot.slot_label,
                    appointment_id=pending_slot.appointment_id,
                ),
            )

        return self.advance(
            patch,
            "Gracias, ya anoté el motivo.",
            reason_collected=self.patient.needs_consult_reason,
        )

    def parse(self, text: str) -> PatientProfilePatch | None:
        reason = format_consult_reason_answer(text, self.settings.CONSULT_REASON_MAX_LENGTH)
        if reason is None:
            return None
        return PatientProfilePatch(consult_reason=reason, needs_consult_reason=False)

    def back_to_slots(self) -> HandledResult:
        patch = PatientProfilePatch(needs_consult_reason=False)
        if not self.data.pending_slots:
            return show_booking_menu(
                "Volvemos al menú principal para que elijas otra opción.", patch=patch
            )
        return HandledResult(
            reply="Volvemos a los horarios disponibles. Elegí otro horario:",
            menu=build_slot_menu(self.data.pending_slots),
            next_state=ConversationState.BOOKING_CHOOSE_SLOT,
            state_data=self.data.model_copy(update={"pending_reason_slot": None}),
            patient_profile_patch=patch,
        )
