"""
Flow data models for the scheduling conversation.

This module defines the core data structures used by the flow engine:
- ConversationState: Enum of persisted conversation states
- ConversationIntent / QuickIntent: What the customer is trying to do
- ProfileField: Mandatory onboarding fields in their fixed order
- ConversationStateData: Working memory carried between turns
- PatientSnapshot / PatientMatch: Read-only views of customer records
- CalendarSlot / DayOption / SlotOption: Calendar inputs and generated options
- MenuTemplate / MenuOption: Presentation of choices
- HandledResult / UnhandledResult: Outcome of one inbound message
- ConversationContext: Everything the engine reads for one invocation

Wire-facing models use camelCase aliases so the caller can pass persisted JSON
verbatim and receive a JSON-ready payload back.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """Persisted states of the scheduling conversation."""

    WELCOME = "WELCOME"  # First contact
    PROFILE_MENU = "PROFILE_MENU"  # Legacy value, shows the booking menu
    PROFILE_DNI = "PROFILE_DNI"
    PROFILE_NAME = "PROFILE_NAME"
    PROFILE_BIRTHDATE = "PROFILE_BIRTHDATE"
    PROFILE_ADDRESS = "PROFILE_ADDRESS"
    PROFILE_INSURANCE = "PROFILE_INSURANCE"
    PROFILE_REASON = "PROFILE_REASON"
    BOOKING_MENU = "BOOKING_MENU"  # Main menu (A/B/C/D)
    BOOKING_CHOOSE_DAY = "BOOKING_CHOOSE_DAY"
    BOOKING_CHOOSE_SLOT = "BOOKING_CHOOSE_SLOT"
    BOOKING_CONFIRM = "BOOKING_CONFIRM"  # Cancellation confirmation
    UPLOAD_WAITING = "UPLOAD_WAITING"  # Waiting for documents
    FREE_CHAT = "FREE_CHAT"  # Conversation owned by the AI agent


class ConversationIntent(str, Enum):
    """Multi-step flow the working memory belongs to."""

    BOOK = "book"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"


class QuickIntent(str, Enum):
    """Keyword intents recognized in any booking state."""

    MENU = "menu"
    BOOK = "book"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"


class BusinessType(str, Enum):
    """Business categories served by the platform."""

    HEALTH = "HEALTH"
    BEAUTY = "BEAUTY"
    RETAIL = "RETAIL"


class ProfileField(str, Enum):
    """Mandatory profile fields. Declaration order is the onboarding order."""

    DNI = "dni"
    NAME = "name"
    BIRTH_DATE = "birth_date"
    ADDRESS = "address"
    INSURANCE = "insurance"
    CONSULT_REASON = "consult_reason"

    @property
    def flag_name(self) -> str:
        """Name of the needs_* flag that tracks this field."""
        return f"needs_{self.value}"


PROFILE_FIELD_STATES: dict[ProfileField, ConversationState] = {
    ProfileField.DNI: ConversationState.PROFILE_DNI,
    ProfileField.NAME: ConversationState.PROFILE_NAME,
    ProfileField.BIRTH_DATE: ConversationState.PROFILE_BIRTHDATE,
    ProfileField.ADDRESS: ConversationState.PROFILE_ADDRESS,
    ProfileField.INSURANCE: ConversationState.PROFILE_INSURANCE,
    ProfileField.CONSULT_REASON: ConversationState.PROFILE_REASON,
}

ONBOARDING_STATES: frozenset[ConversationState] = frozenset(PROFILE_FIELD_STATES.values())


def coerce_state(value: Any) -> ConversationState | None:
    """Map a persisted state value to ConversationState, or None if unknown."""
    if isinstance(value, ConversationState):
        return value
    try:
        return ConversationState(str(value).strip().upper())
    except ValueError:
        return None


class FlowModel(BaseModel):
    """Base model with camelCase wire aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict using wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Calendar and menu options
# ============================================================================


class CalendarSlot(FlowModel):
    """Available slot produced by the availability service."""

    model_config = ConfigDict(frozen=True)

    start_iso: str = Field(alias="startISO")
    human_label: str


class DayOption(FlowModel):
    """Generated day choice (one per calendar day with availability)."""

    id: str
    date_iso: str = Field(alias="dateISO")
    label: str
    aliases: list[str] = Field(default_factory=list)


class SlotOption(FlowModel):
    """Generated slot choice within a selected day."""

    id: str
    start_iso: str = Field(alias="startISO")
    label: str
    aliases: list[str] = Field(default_factory=list)


class MenuOption(FlowModel):
    id: str
    label: str
    description: str | None = None
    aliases: list[str] = Field(default_factory=list)


class MenuTemplate(FlowModel):
    """Presentation-only menu. The caller renders it for its channel."""

    title: str
    prompt: str
    options: list[MenuOption] = Field(default_factory=list)
    hint: str | None = None


# ============================================================================
# Working memory
# ============================================================================


class PendingReasonSlot(FlowModel):
    """Slot chosen by the customer, waiting for a consult reason."""

    slot_iso: str = Field(alias="slotISO")
    slot_label: str
    appointment_id: int | None = None


class ConversationStateData(FlowModel):
    """
    Working memory for multi-step flows (day -> slot -> reason -> confirm).

    Only valid while a flow is in progress. Rehydrate persisted JSON with
    from_raw(), which drops fields that fail validation instead of failing
    the whole message.
    """

    OPTION_FIELDS: ClassVar[dict[str, type[FlowModel]]] = {
        "pending_days": DayOption,
        "pending_slots": SlotOption,
    }

    intent: ConversationIntent | None = None
    pending_days: list[DayOption] = Field(default_factory=list)
    pending_slots: list[SlotOption] = Field(default_factory=list)
    selected_day_iso: str | None = Field(default=None, alias="selectedDayISO")
    reschedule_appointment_id: int | None = None
    pending_reason_slot: PendingReasonSlot | None = None
    require_fresh_reason: bool | None = None
    onboarding_reason_satisfied: bool | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "ConversationStateData":
        """
        Rehydrate working memory from the persisted JSON blob.

        Args:
            raw: Persisted value (dict, None, or anything else)

        Returns:
            ConversationStateData with every valid field preserved and every
            invalid one dropped. Non-dict input yields empty memory.
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, dict):
            return cls()

        values: dict[str, Any] = {}
        for name, field_info in cls.model_fields.items():
            wire_name = field_info.alias or to_camel(name)
            if wire_name in raw:
                value = raw[wire_name]
            elif name in raw:
                value = raw[name]
            else:
                continue

            if name in cls.OPTION_FIELDS:
                value = _valid_options(value, cls.OPTION_FIELDS[name])

            try:
                cls.model_validate({name: value})
            except ValidationError:
                logger.warning(f"Dropping invalid working memory field | field={wire_name}")
                continue
            values[name] = value

        return cls.model_validate(values)

    def is_empty(self) -> bool:
        """True when no field carries information."""
        return not self.to_payload()

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        return {key: value for key, value in payload.items() if value != []}


def _valid_options(value: Any, option_model: type[FlowModel]) -> list[dict[str, Any]]:
    """Keep only option entries that have a string id and validate as options."""
    if not isinstance(value, list):
        return []
    options = []
    for entry in value:
        if isinstance(entry, option_model):
            options.append(entry.model_dump(by_alias=True))
            continue
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            continue
        try:
            option_model.model_validate(entry)
        except ValidationError:
            continue
        options.append(entry)
    return options


# ============================================================================
# Customer records
# ============================================================================


class ProfileFlags(FlowModel):
    """The six needs_* flags shared by snapshots and lookup matches."""

    needs_dni: bool = False
    needs_name: bool = False
    needs_birth_date: bool = False
    needs_address: bool = False
    needs_insurance: bool = False
    needs_consult_reason: bool = False

    def needs(self, profile_field: ProfileField) -> bool:
        return bool(getattr(self, profile_field.flag_name))

    def pending_fields(self) -> list[ProfileField]:
        """Unmet fields in onboarding order."""
        return [profile_field for profile_field in ProfileField if self.needs(profile_field)]

    @property
    def has_pending_fields(self) -> bool:
        return any(self.needs(profile_field) for profile_field in ProfileField)


class PatientProfilePatch(FlowModel):
    """
    Field-level profile updates for the customer store.

    Only explicitly set fields are emitted: None means "set to null",
    an absent field means "leave unchanged".
    """

    full_name: str | None = None
    dni: str | None = None
    birth_date: str | None = None
    address: str | None = None
    insurance_provider: str | None = None
    consult_reason: str | None = None
    needs_dni: bool | None = None
    needs_name: bool | None = None
    needs_birth_date: bool | None = None
    needs_address: bool | None = None
    needs_insurance: bool | None = None
    needs_consult_reason: bool | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class PatientSnapshot(ProfileFlags):
    """Read-only view of the customer record the conversation belongs to."""

    id: int
    full_name: str = ""
    dni: str | None = None
    birth_date: str | None = None
    address: str | None = None
    insurance_provider: str | None = None
    consult_reason: str | None = None
    conversation_state: str = ConversationState.WELCOME.value
    conversation_state_data: Any = None

    def with_patch(self, patch: PatientProfilePatch) -> "PatientSnapshot":
        """Snapshot as it will look once the store applies the patch."""
        updates = {name: getattr(patch, name) for name in patch.model_fields_set}
        if updates.get("full_name") is None:
            updates.pop("full_name", None)
        return self.model_copy(update=updates)


class PatientMatch(ProfileFlags):
    """Existing record found by national id."""

    id: int
    full_name: str = ""


class AppointmentSummary(FlowModel):
    """Active appointment owned by the scheduling store."""

    id: int
    human_label: str
    date_time: datetime | None = None
    status: str | None = None


# ============================================================================
# Results
# ============================================================================


class BookingRequest(FlowModel):
    type: Literal["book", "reschedule"]
    slot_iso: str = Field(alias="slotISO")
    slot_label: str
    appointment_id: int | None = None


class CancelRequest(FlowModel):
    appointment_id: int


class MergeInstruction(FlowModel):
    """Merge the current record into target_patient_id before applying the patch."""

    target_patient_id: int


class HandledResult(FlowModel):
    """
    Outcome of a message handled by the flow.

    Attributes:
        reply: Text to send back verbatim
        menu: Optional choices to render below the reply
        next_state: State to persist on the conversation record
        state_data: Working memory to persist (None clears it)
        patient_profile_patch: Profile updates for the customer store
        booking_request: Booking or reschedule instruction
        cancel_request: Cancellation instruction
        merge: Cross-record merge instruction
    """

    handled: Literal[True] = True
    reply: str
    menu: MenuTemplate | None = None
    next_state: ConversationState
    state_data: ConversationStateData | None = None
    patient_profile_patch: PatientProfilePatch | None = None
    booking_request: BookingRequest | None = None
    cancel_request: CancelRequest | None = None
    merge: MergeInstruction | None = None

    @model_validator(mode="after")
    def _single_side_effect(self) -> "HandledResult":
        if self.booking_request is not None and self.cancel_request is not None:
            raise ValueError("A result may carry a booking request or a cancel request, not both")
        return self

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "handled": True,
            "reply": self.reply,
            "nextState": self.next_state.value,
            "stateData": self.state_data.to_payload() if self.state_data is not None else None,
        }
        if self.menu is not None:
            payload["menu"] = self.menu.to_payload()
        if self.patient_profile_patch is not None:
            payload["patientProfilePatch"] = self.patient_profile_patch.to_payload()
        if self.booking_request is not None:
            payload["bookingRequest"] = self.booking_request.to_payload()
        if self.cancel_request is not None:
            payload["cancelRequest"] = self.cancel_request.to_payload()
        if self.merge is not None:
            payload["mergeWithPatientId"] = self.merge.target_patient_id
        return payload


class UnhandledResult(FlowModel):
    """The message belongs to the external AI agent."""

    handled: Literal[False] = False

    def to_payload(self) -> dict[str, Any]:
        return {"handled": False}


UNHANDLED = UnhandledResult()

ConversationFlowResult = HandledResult | UnhandledResult


# ============================================================================
# Invocation context
# ============================================================================

PatientLookup = Callable[[str], Awaitable[PatientMatch | dict[str, Any] | None]]


@dataclass
class ConversationContext:
    """
    Inputs for one invocation of the flow.

    Attributes:
        incoming_text: Raw inbound text
        patient: Snapshot of the customer record (includes persisted state)
        timezone: Business timezone (IANA name)
        business_type: Business category of the account
        available_slots: Slots for the lookahead window
        active_appointment: Upcoming appointment, if any
        find_patient_by_dni: Optional async lookup used to detect duplicates
        now: Reference instant for date validation (default: current time)
    """

    incoming_text: str
    patient: PatientSnapshot
    timezone: str = "America/Argentina/Buenos_Aires"
    business_type: str = BusinessType.HEALTH.value
    available_slots: list[CalendarSlot] = field(default_factory=list)
    active_appointment: AppointmentSummary | None = None
    find_patient_by_dni: PatientLookup | None = None
    now: datetime | None = None
