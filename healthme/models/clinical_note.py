from sqlalchemy import Column, Integer, ForeignKey, DateTime, Boolean, Text, Index, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class NoteType(str, enum.Enum):
    SOAP = "SOAP"
    HISTORY_AND_PHYSICAL = "H&P"
    PROGRESS_NOTE = "Progress Note"
    DISCHARGE_SUMMARY = "Discharge Summary"

class ClinicalNote(Base):
    __tablename__ = "clinical_notes"

    id = Column(Integer, primary_key=True, index=True)

    # Related entities
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    practitioner_id = Column(Integer, ForeignKey("practitioners.id"), nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, unique=True)

    note_type = Column(
        SQLEnum(NoteType, values_callable=lambda e: [m.value for m in e], name="note_type"),
        nullable=False,
        default=NoteType.SOAP,
    )

    # SOAP narrative
    subjective = Column(Text, nullable=False)
    objective = Column(Text, nullable=False)
    assessment = Column(Text, nullable=False)
    plan = Column(Text, nullable=False)

    # Status and audit
    note_date = Column(DateTime, server_default=func.now())
    is_signed = Column(Boolean, nullable=False, default=False)
    signed_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    appointment = relationship("Appointment", back_populates="clinical_note")
    patient = relationship("Patient")
    practitioner = relationship("Practitioner")

    __table_args__ = (
        Index("ix_clinical_notes_patient_date", "patient_id", "note_date"),
        Index("ix_clinical_notes_practitioner_date", "practitioner_id", "note_date"),
    )

    def __repr__(self):
        return f"<ClinicalNote(id={self.id}, appointment_id={self.appointment_id}, signed={self.is_signed})>"
