from datetime import datetime
from typing import Optional, Tuple
import logging

from sqlalchemy.orm import Session

from ..core.caller import CallerContext
from ..core.database import transaction
from ..core.exceptions import BadRequestError, ConflictError, NotFoundError
from ..core.policy import Action, ensure_can_mutate, ensure_can_view
from ..models.appointment import Appointment, AppointmentStatus
from ..models.clinical_note import ClinicalNote
from ..schemas.clinical_note import ClinicalNoteUpdate, SOAPNotePayload

logger = logging.getLogger(__name__)

NOTE_EXISTS = "A clinical note already exists for this appointment."

class EncounterService:
    """Links clinical notes to appointments and manages note signing."""

    def __init__(self, db: Session):
        self.db = db

    def complete_with_note(
        self,
        appointment_id: int,
        caller: CallerContext,
        payload: SOAPNotePayload
    ) -> Tuple[Appointment, ClinicalNote]:
        """Create the encounter note and mark the appointment completed.

        Both writes commit together. Appointments already completed without a
        note may still receive one; cancelled appointments may not.
        """
        with transaction(self.db, NOTE_EXISTS):
            appointment = (
                self.db.query(Appointment)
                .filter(Appointment.id == appointment_id)
                .with_for_update()
                .first()
            )
            if not appointment:
                raise NotFoundError("Appointment not found.")

            ensure_can_mutate(appointment, caller, Action.WRITE_NOTE)

            if appointment.status == AppointmentStatus.CANCELLED:
                raise ConflictError("Cannot document a cancelled appointment.")

            note = self.attach_note(appointment, payload)
            mark_completed(appointment)

        self.db.refresh(appointment)
        self.db.refresh(note)
        logger.info(f"Clinical note {note.id} created; appointment {appointment.id} completed")
        return appointment, note

    def attach_note(self, appointment: Appointment, payload: SOAPNotePayload) -> ClinicalNote:
        """Stage a note for the appointment in the caller's open transaction."""
        existing = self.db.query(ClinicalNote).filter(
            ClinicalNote.appointment_id == appointment.id
        ).first()
        if existing:
            logger.warning(f"Duplicate note attempt for appointment {appointment.id}")
            raise ConflictError(NOTE_EXISTS)

        note = ClinicalNote(
            patient_id=appointment.patient_id,
            practitioner_id=appointment.practitioner_id,
            appointment_id=appointment.id,
            note_type=payload.note_type,
            subjective=payload.subjective,
            objective=payload.objective,
            assessment=payload.assessment,
            plan=payload.plan,
        )
        self.db.add(note)
        # Flush so a racing insert trips the unique constraint inside this transaction
        self.db.flush()
        return note

    def get_note(self, caller: CallerContext, note_id: int) -> ClinicalNote:
        note = self.db.query(ClinicalNote).filter(ClinicalNote.id == note_id).first()
        if not note:
            raise NotFoundError("Clinical note not found.")
        ensure_can_view(note, caller, "Unauthorized to view this clinical note.")
        return note

    def get_note_for_appointment(self, caller: CallerContext, appointment_id: int) -> ClinicalNote:
        note = self.db.query(ClinicalNote).filter(
            ClinicalNote.appointment_id == appointment_id
        ).first()
        if not note:
            raise NotFoundError("No clinical note exists for this appointment.")
        ensure_can_view(note, caller, "Unauthorized to view this clinical note.")
        return note

    def amend_note(self, caller: CallerContext, note_id: int, changes: ClinicalNoteUpdate) -> ClinicalNote:
        """Edit an unsigned note. Signed notes are immutable."""
        with transaction(self.db, "Clinical note could not be updated."):
            note = self._get_for_update(note_id)
            ensure_can_mutate(note, caller, Action.AMEND_NOTE)
            if note.is_signed:
                raise ConflictError("Signed clinical notes cannot be modified.")

            for field, value in changes.model_dump(exclude_none=True).items():
                setattr(note, field, value)

        self.db.refresh(note)
        return note

    def sign_note(self, caller: CallerContext, note_id: int) -> ClinicalNote:
        with transaction(self.db, "Clinical note could not be signed."):
            note = self._get_for_update(note_id)
            ensure_can_mutate(note, caller, Action.SIGN_NOTE)
            if note.is_signed:
                raise BadRequestError("Note is already signed.")

            note.is_signed = True
            note.signed_date = datetime.utcnow()

        self.db.refresh(note)
        logger.info(f"Clinical note {note.id} signed by practitioner {note.practitioner_id}")
        return note

    def _get_for_update(self, note_id: int) -> ClinicalNote:
        note = (
            self.db.query(ClinicalNote)
            .filter(ClinicalNote.id == note_id)
            .with_for_update()
            .first()
        )
        if not note:
            raise NotFoundError("Clinical note not found.")
        return note


def mark_completed(appointment: Appointment, when: Optional[datetime] = None) -> None:
    appointment.status = AppointmentStatus.COMPLETED
    if appointment.completion_date is None:
        appointment.completion_date = when or datetime.utcnow()
