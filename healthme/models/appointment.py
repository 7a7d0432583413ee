from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"

class AppointmentMode(str, enum.Enum):
    VIRTUAL = "virtual"
    IN_PERSON = "in-person"

# Statuses that hold a slot; completed/cancelled free it again
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.RESCHEDULED,
)
TERMINAL_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)

_ACTIVE_SLOT_CLAUSE = "status IN ('pending', 'confirmed', 'rescheduled')"

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    practitioner_id = Column(Integer, ForeignKey("practitioners.id"), nullable=False, index=True)

    # Slot
    date = Column(Date, nullable=False, index=True)
    time_slot = Column(String(20), nullable=False)  # opaque label, e.g. "14:30"
    duration = Column(Integer, nullable=False, default=30)  # minutes

    # Appointment details
    mode = Column(
        SQLEnum(AppointmentMode, values_callable=_enum_values, name="appointment_mode"),
        nullable=False,
        default=AppointmentMode.VIRTUAL,
    )
    location = Column(String(255), nullable=True)  # in-person only
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    session_link = Column(String(500), nullable=True)  # virtual only, set on confirmation
    status = Column(
        SQLEnum(AppointmentStatus, values_callable=_enum_values, name="appointment_status"),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    # Tracking
    cancellation_reason = Column(String(255), nullable=True)
    cancellation_date = Column(DateTime, nullable=True)
    completion_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    practitioner = relationship("Practitioner", back_populates="appointments")
    clinical_note = relationship("ClinicalNote", back_populates="appointment", uselist=False)

    # No double booking on either side while an appointment holds the slot
    __table_args__ = (
        Index(
            "uq_appointments_practitioner_active_slot",
            "practitioner_id", "date", "time_slot",
            unique=True,
            postgresql_where=text(_ACTIVE_SLOT_CLAUSE),
            sqlite_where=text(_ACTIVE_SLOT_CLAUSE),
        ),
        Index(
            "uq_appointments_patient_active_slot",
            "patient_id", "date", "time_slot",
            unique=True,
            postgresql_where=text(_ACTIVE_SLOT_CLAUSE),
            sqlite_where=text(_ACTIVE_SLOT_CLAUSE),
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, practitioner_id={self.practitioner_id}, date='{self.date}', slot='{self.time_slot}', status='{self.status}')>"
