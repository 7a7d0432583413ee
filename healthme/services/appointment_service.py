from datetime import date, datetime
from typing import List, Optional, Tuple
import logging
import uuid

from sqlalchemy.orm import Session, Query

from ..core.caller import (
    AdminPrincipal, CallerContext, PatientPrincipal,
    PractitionerPrincipal, UnknownPrincipalError
)
from ..core.config import settings
from ..core.database import transaction
from ..core.exceptions import BadRequestError, ConflictError, NotFoundError
from ..core.policy import Action, ensure_can_book, ensure_can_mutate, ensure_can_view
from ..models.appointment import (
    Appointment, AppointmentMode, AppointmentStatus,
    ACTIVE_STATUSES, TERMINAL_STATUSES
)
from ..models.clinical_note import ClinicalNote
from ..models.practitioner import Practitioner
from ..schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from .availability import AvailabilityChecker
from .encounter_service import NOTE_EXISTS, EncounterService, mark_completed

logger = logging.getLogger(__name__)

# Targets accepted by the status endpoint; pending is only ever set on creation
STATUS_TARGETS = (
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.RESCHEDULED,
)

ACTION_FOR_STATUS = {
    AppointmentStatus.CONFIRMED: Action.CONFIRM,
    AppointmentStatus.CANCELLED: Action.CANCEL,
    AppointmentStatus.COMPLETED: Action.COMPLETE,
    AppointmentStatus.RESCHEDULED: Action.RESCHEDULE,
}

SLOT_TAKEN = "The selected time slot is already booked."

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.availability = AvailabilityChecker(db)
        self.encounters = EncounterService(db)

    def create_appointment(self, caller: CallerContext, data: AppointmentCreate) -> Appointment:
        """Book a new appointment for the calling patient."""
        ensure_can_book(caller)
        patient_id = caller.profile_id

        practitioner = self.db.query(Practitioner).filter(
            Practitioner.id == data.practitioner_id
        ).first()
        if not practitioner or not practitioner.is_active:
            raise NotFoundError("Practitioner not found.")

        with transaction(self.db, SLOT_TAKEN):
            conflict = self.availability.find_conflict(
                practitioner.id, patient_id, data.date, data.time_slot
            )
            if conflict:
                logger.warning(
                    f"Booking rejected for patient {patient_id} with practitioner "
                    f"{practitioner.id} on {data.date} at {data.time_slot}"
                )
                raise ConflictError(conflict)

            appointment = Appointment(
                patient_id=patient_id,
                practitioner_id=practitioner.id,
                date=data.date,
                time_slot=data.time_slot,
                duration=data.duration,
                mode=data.mode,
                location=data.location if data.mode == AppointmentMode.IN_PERSON else None,
                reason=data.reason,
                status=AppointmentStatus.PENDING,
            )
            self.db.add(appointment)

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} booked: patient {patient_id}, "
            f"practitioner {practitioner.id}, {appointment.date} {appointment.time_slot}"
        )
        return appointment

    def get_appointment(self, caller: CallerContext, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found.")
        ensure_can_view(appointment, caller, "Unauthorized to view this appointment.")
        return appointment

    def list_for_caller(self, caller: CallerContext) -> List[Appointment]:
        """Patient: own bookings. Practitioner: assigned ones. Admin: all."""
        return (
            self._scoped(caller)
            .order_by(Appointment.date.desc(), Appointment.time_slot.asc())
            .all()
        )

    def list_upcoming(self, caller: CallerContext, today: Optional[date] = None) -> List[Appointment]:
        today = today or date.today()
        return (
            self._scoped(caller)
            .filter(Appointment.date >= today, Appointment.status.in_(ACTIVE_STATUSES))
            .order_by(Appointment.date.asc(), Appointment.time_slot.asc())
            .all()
        )

    def list_history(self, caller: CallerContext) -> List[Appointment]:
        return (
            self._scoped(caller)
            .filter(Appointment.status.in_(TERMINAL_STATUSES))
            .order_by(Appointment.date.desc(), Appointment.time_slot.desc())
            .all()
        )

    def update_status(
        self,
        caller: CallerContext,
        appointment_id: int,
        update: AppointmentStatusUpdate
    ) -> Tuple[Appointment, Optional[ClinicalNote]]:
        """Apply one state-machine transition.

        Checks run in order: payload (400), existence (404), caller (403),
        current state (409). Nothing is written unless every check passes.
        """
        target = parse_target_status(update.status)
        if target == AppointmentStatus.RESCHEDULED and not (update.date and update.time_slot and update.time_slot.strip()):
            raise BadRequestError("Rescheduling requires a new date and timeSlot.")

        note = None
        conflict_detail = NOTE_EXISTS if target == AppointmentStatus.COMPLETED else SLOT_TAKEN
        with transaction(self.db, conflict_detail):
            appointment = (
                self.db.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .with_for_update()
                .first()
            )
            if not appointment:
                raise NotFoundError("Appointment not found.")

            ensure_can_mutate(appointment, caller, ACTION_FOR_STATUS[target])

            if appointment.is_terminal:
                raise ConflictError(
                    f"Appointment is already {appointment.status.value}; "
                    "no further status changes are allowed."
                )

            previous = appointment.status
            if target == AppointmentStatus.CONFIRMED:
                self._confirm(appointment, update)
            elif target == AppointmentStatus.CANCELLED:
                self._cancel(appointment, update)
            elif target == AppointmentStatus.COMPLETED:
                note = self._complete(appointment, update)
            elif target == AppointmentStatus.RESCHEDULED:
                self._reschedule(appointment, update)

            if update.notes is not None:
                appointment.notes = update.notes

        self.db.refresh(appointment)
        if note is not None:
            self.db.refresh(note)
        logger.info(
            f"Appointment {appointment.id}: {previous.value} -> {appointment.status.value} "
            f"by {caller.role.value} {caller.identity_id}"
        )
        return appointment, note

    def _confirm(self, appointment: Appointment, update: AppointmentStatusUpdate) -> None:
        if appointment.mode == AppointmentMode.VIRTUAL:
            appointment.session_link = (
                update.session_link
                or appointment.session_link
                or f"{settings.VIRTUAL_SESSION_BASE_URL.rstrip('/')}/{uuid.uuid4().hex}"
            )
        appointment.status = AppointmentStatus.CONFIRMED

    def _cancel(self, appointment: Appointment, update: AppointmentStatusUpdate) -> None:
        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = update.cancellation_reason or settings.DEFAULT_CANCELLATION_REASON
        appointment.cancellation_date = datetime.utcnow()

    def _complete(self, appointment: Appointment, update: AppointmentStatusUpdate) -> Optional[ClinicalNote]:
        note = None
        if update.note is not None:
            note = self.encounters.attach_note(appointment, update.note)
        mark_completed(appointment)
        return note

    def _reschedule(self, appointment: Appointment, update: AppointmentStatusUpdate) -> None:
        new_slot = update.time_slot.strip()
        conflict = self.availability.find_conflict(
            appointment.practitioner_id,
            appointment.patient_id,
            update.date,
            new_slot,
            exclude_appointment_id=appointment.id,
        )
        if conflict:
            logger.warning(
                f"Reschedule of appointment {appointment.id} to {update.date} {new_slot} rejected"
            )
            raise ConflictError(conflict)

        appointment.date = update.date
        appointment.time_slot = new_slot
        appointment.status = AppointmentStatus.RESCHEDULED

    def _scoped(self, caller: CallerContext) -> Query:
        query = self.db.query(Appointment)
        principal = caller.principal
        if isinstance(principal, PatientPrincipal):
            return query.filter(Appointment.patient_id == principal.profile_id)
        if isinstance(principal, PractitionerPrincipal):
            return query.filter(Appointment.practitioner_id == principal.profile_id)
        if isinstance(principal, AdminPrincipal):
            return query
        raise UnknownPrincipalError(principal)


def parse_target_status(value: str) -> AppointmentStatus:
    allowed = [s.value for s in STATUS_TARGETS]
    if value not in allowed:
        raise BadRequestError(
            f"Invalid status provided. Must be one of: {', '.join(allowed)}."
        )
    return AppointmentStatus(value)
