from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models.clinical_note import NoteType


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


NarrativeText = Annotated[str, AfterValidator(_not_blank)]


class SOAPNotePayload(BaseModel):
    """Subjective/Objective/Assessment/Plan narrative of an encounter."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subjective: NarrativeText
    objective: NarrativeText
    assessment: NarrativeText
    plan: NarrativeText
    note_type: NoteType = NoteType.SOAP


class ClinicalNoteCreate(SOAPNotePayload):
    appointment_id: int


class ClinicalNoteUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subjective: Optional[NarrativeText] = None
    objective: Optional[NarrativeText] = None
    assessment: Optional[NarrativeText] = None
    plan: Optional[NarrativeText] = None
    note_type: Optional[NoteType] = None


class ClinicalNoteResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    patient_id: int
    practitioner_id: int
    appointment_id: int
    note_type: NoteType
    subjective: str
    objective: str
    assessment: str
    plan: str
    note_date: Optional[datetime] = None
    is_signed: bool
    signed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
