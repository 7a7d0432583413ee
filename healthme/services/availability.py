from datetime import date
from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..models.appointment import Appointment, ACTIVE_STATUSES

logger = logging.getLogger(__name__)

class AvailabilityChecker:
    """Slot conflict checks.

    A slot is the exact (date, time-slot label) pair. Labels are compared for
    equality only; durations are not used to detect overlapping slots.
    Completed and cancelled appointments never block a slot.
    """

    def __init__(self, db: Session):
        self.db = db

    def _active_in_slot(
        self,
        slot_date: date,
        time_slot: str,
        exclude_appointment_id: Optional[int] = None
    ):
        query = self.db.query(Appointment).filter(
            Appointment.date == slot_date,
            Appointment.time_slot == time_slot,
            Appointment.status.in_(ACTIVE_STATUSES)
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query

    def is_available(
        self,
        practitioner_id: int,
        slot_date: date,
        time_slot: str,
        exclude_appointment_id: Optional[int] = None
    ) -> bool:
        """Return True if the practitioner has no active appointment in the slot."""
        existing = self._active_in_slot(slot_date, time_slot, exclude_appointment_id).filter(
            Appointment.practitioner_id == practitioner_id
        ).first()
        return existing is None

    def patient_is_free(
        self,
        patient_id: int,
        slot_date: date,
        time_slot: str,
        exclude_appointment_id: Optional[int] = None
    ) -> bool:
        """Return True if the patient has no active appointment in the slot."""
        existing = self._active_in_slot(slot_date, time_slot, exclude_appointment_id).filter(
            Appointment.patient_id == patient_id
        ).first()
        return existing is None

    def find_conflict(
        self,
        practitioner_id: int,
        patient_id: int,
        slot_date: date,
        time_slot: str,
        exclude_appointment_id: Optional[int] = None
    ) -> Optional[str]:
        """Describe the double booking a new slot would cause, or None if free."""
        if not self.is_available(practitioner_id, slot_date, time_slot, exclude_appointment_id):
            logger.info(
                f"Practitioner {practitioner_id} already booked on {slot_date} at {time_slot}"
            )
            return "The selected time slot is already booked."
        if not self.patient_is_free(patient_id, slot_date, time_slot, exclude_appointment_id):
            logger.info(
                f"Patient {patient_id} already has an appointment on {slot_date} at {time_slot}"
            )
            return "You already have an appointment booked in this time slot."
        return None
