from datetime import date as CalendarDate, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models.appointment import AppointmentMode, AppointmentStatus
from .clinical_note import ClinicalNoteResponse, SOAPNotePayload


class CamelModel(BaseModel):
    """Wire format uses camelCase; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AppointmentCreate(CamelModel):
    practitioner_id: int
    date: CalendarDate
    time_slot: str = Field(min_length=1, max_length=20)
    mode: AppointmentMode = AppointmentMode.VIRTUAL
    reason: str = Field(min_length=1)
    duration: int = Field(default=30, gt=0, le=480)
    location: Optional[str] = None

    @field_validator("time_slot", "reason")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def location_for_in_person(self):
        if self.mode == AppointmentMode.IN_PERSON and not (self.location and self.location.strip()):
            raise ValueError("location is required for in-person appointments")
        return self


class AppointmentStatusUpdate(CamelModel):
    # Plain string so an unknown value is reported with the allowed set
    status: str
    session_link: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    date: Optional[CalendarDate] = None
    time_slot: Optional[str] = Field(default=None, max_length=20)
    note: Optional[SOAPNotePayload] = None


class AppointmentResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    patient_id: int
    practitioner_id: int
    date: CalendarDate
    time_slot: str
    duration: int
    mode: AppointmentMode
    location: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    session_link: Optional[str] = None
    status: AppointmentStatus
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentList(CamelModel):
    count: int
    data: List[AppointmentResponse]


class AppointmentStatusResponse(CamelModel):
    message: str
    data: AppointmentResponse
    clinical_note: Optional[ClinicalNoteResponse] = None


class AvailabilityResponse(CamelModel):
    practitioner_id: int
    date: CalendarDate
    time_slot: str
    available: bool
