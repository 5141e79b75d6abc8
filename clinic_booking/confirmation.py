"""Appointment confirmation flow as an explicit state machine.

States:
- IDLE: form shown, nothing in flight
- VALIDATING: local checks on name and phone
- SUBMITTING: the single POST to create-appointment is in flight
- SUCCEEDED: terminal, caller navigates to the success page
- FAILED: submission failed, message shown; user may retry (back to IDLE)
- CANCELLED: terminal, user backed out, nothing was sent

Validation failures go straight back to IDLE without any network call.
There is no automatic retry and no idempotency key.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from clinic_booking.availability import BookingOverlay
from clinic_booking.calendar_window import format_long_date
from clinic_booking.errors import BookingError, SlotUnavailableError, ValidationError
from clinic_booking.http_client import ApiGateway
from clinic_booking.messages import error_message, t
from clinic_booking.models import Appointment, AppointmentRequest, Doctor, TimeSlot
from clinic_booking.routes import build_path

logger = logging.getLogger(__name__)

# +996 then exactly nine ASCII digits
PHONE_PATTERN = re.compile(r"^\+996[0-9]{9}$")
MIN_NAME_LENGTH = 2


class FlowState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Pattern: current state -> [allowed next states]
VALID_TRANSITIONS: Dict[FlowState, List[FlowState]] = {
    FlowState.IDLE: [
        FlowState.VALIDATING,
        FlowState.CANCELLED,
    ],
    FlowState.VALIDATING: [
        FlowState.IDLE,  # Field errors
        FlowState.SUBMITTING,
    ],
    FlowState.SUBMITTING: [
        FlowState.SUCCEEDED,
        FlowState.FAILED,
    ],
    FlowState.FAILED: [
        FlowState.IDLE,  # Retry
        FlowState.CANCELLED,
    ],
    FlowState.SUCCEEDED: [],
    FlowState.CANCELLED: [],
}


class InvalidTransition(Exception):
    """Raised when the flow is asked to move along an undefined edge."""

    def __init__(self, current: FlowState, intended: FlowState):
        self.current = current
        self.intended = intended
        super().__init__(f"Cannot go from {current.value} to {intended.value}")


def validate_transition(current: FlowState, intended: FlowState) -> bool:
    """
    Validate state transition.

    Example:
        >>> validate_transition(FlowState.IDLE, FlowState.VALIDATING)
        True
        >>> validate_transition(FlowState.SUCCEEDED, FlowState.VALIDATING)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


def validate_name(name: Optional[str], lang: str = "ru") -> str:
    """
    Return the trimmed name.

    Raises:
        ValidationError: Empty/whitespace-only or shorter than 2 characters
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name", t("name_required", lang))
    if len(cleaned) < MIN_NAME_LENGTH:
        raise ValidationError("name", t("name_too_short", lang))
    return cleaned


def validate_phone(phone: Optional[str], lang: str = "ru") -> str:
    """
    Return the trimmed phone; accepts exactly +996 followed by 9 digits.

    Raises:
        ValidationError: Empty or not in +996XXXXXXXXX form
    """
    cleaned = (phone or "").strip()
    if not cleaned:
        raise ValidationError("phone", t("phone_required", lang))
    if not PHONE_PATTERN.fullmatch(cleaned):
        raise ValidationError("phone", t("phone_invalid", lang))
    return cleaned


def validate_form(name: Optional[str], phone: Optional[str], lang: str = "ru") -> Dict[str, str]:
    """Field name -> message for every failing field (empty dict if valid)."""
    errors: Dict[str, str] = {}
    for validator, value in ((validate_name, name), (validate_phone, phone)):
        try:
            validator(value, lang)
        except ValidationError as e:
            errors[e.field] = e.message
    return errors


@dataclass
class FlowOutcome:
    """What the page needs to render after a flow step."""
    state: FlowState
    field_errors: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    slot_taken: bool = False
    appointment: Optional[Appointment] = None
    redirect: Optional[str] = None


class ConfirmationFlow:
    """One booking attempt for one doctor and one slot."""

    def __init__(
        self,
        gateway: ApiGateway,
        doctor: Doctor,
        slot: TimeSlot,
        overlay: Optional[BookingOverlay] = None,
    ):
        self.gateway = gateway
        self.doctor = doctor
        self.slot = slot
        self.overlay = overlay
        self.state = FlowState.IDLE
        self.field_errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.pending_request: Optional[AppointmentRequest] = None

    @property
    def lang(self) -> str:
        return self.gateway.language_store.current

    def _transition(self, intended: FlowState):
        if not validate_transition(self.state, intended):
            raise InvalidTransition(self.state, intended)
        logger.debug(f"Confirmation flow {self.state.value} -> {intended.value}")
        self.state = intended

    def summary(self) -> List[str]:
        """Doctor line, specialization line and '<type> на <date> в <time>'."""
        lang = self.lang
        lines = [self.doctor.full_name]
        if self.doctor.specialization_labels:
            lines.append(self.doctor.specialization_labels)
        lines.append(t(
            "summary",
            lang,
            slot_type=t(self.slot.slot_type.value, lang),
            date=format_long_date(self.slot.date, lang),
            time=self.slot.display_time,
        ))
        return lines

    def submit(self, name: str, phone: str, comment: Optional[str] = None) -> FlowOutcome:
        """
        Validate and, if valid, send the booking once.

        A FAILED flow is reset to IDLE first (user retry).

        Raises:
            InvalidTransition: Flow already finished or a submission is in flight
        """
        if self.state == FlowState.FAILED:
            self.retry()

        lang = self.lang
        self._transition(FlowState.VALIDATING)
        self.error = None
        self.field_errors = validate_form(name, phone, lang)
        if self.field_errors:
            self._transition(FlowState.IDLE)
            return FlowOutcome(state=self.state, field_errors=dict(self.field_errors))

        self.pending_request = AppointmentRequest(
            doctor_id=self.doctor.id,
            time_slot_id=self.slot.id,
            full_name=name.strip(),
            phone_number=phone.strip(),
            comment=(comment or "").strip(),
        )
        self._transition(FlowState.SUBMITTING)
        if self.overlay is not None:
            self.overlay.mark_pending(self.slot.id)

        try:
            appointment = self.gateway.create_appointment(self.pending_request)
        except BookingError as e:
            if self.overlay is not None:
                self.overlay.release(self.slot.id)
            self.error = error_message(e, lang, fallback="submit_failed")
            logger.warning(
                f"Booking failed for doctor {self.doctor.id}, slot {self.slot.id}: "
                f"{type(e).__name__}: {e.message}"
            )
            self._transition(FlowState.FAILED)
            return FlowOutcome(
                state=self.state,
                error=self.error,
                slot_taken=isinstance(e, SlotUnavailableError),
            )

        if self.overlay is not None:
            self.overlay.mark_confirmed(self.slot.id)
        self.pending_request = None
        self._transition(FlowState.SUCCEEDED)
        logger.info(f"Appointment created for doctor {self.doctor.id}, slot {self.slot.id}")
        return FlowOutcome(
            state=self.state,
            appointment=appointment,
            redirect=build_path("appointment_success", doctor_id=self.doctor.id),
        )

    def retry(self):
        """FAILED -> IDLE; the form keeps its values on the page side."""
        self._transition(FlowState.IDLE)
        self.error = None

    def cancel(self) -> str:
        """
        Back out: no network call, the transient request is discarded.

        Returns:
            Path of the doctor page to navigate to
        """
        self._transition(FlowState.CANCELLED)
        self.pending_request = None
        self.field_errors = {}
        return build_path("doctor_detail", doctor_id=self.doctor.id)
