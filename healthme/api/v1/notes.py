from fastapi import APIRouter, Depends, status

from ...api.deps import get_caller, get_encounter_service
from ...core.caller import CallerContext
from ...schemas.clinical_note import ClinicalNoteCreate, ClinicalNoteResponse, ClinicalNoteUpdate
from ...services.encounter_service import EncounterService

router = APIRouter(prefix="/notes", tags=["Clinical Notes"])

@router.post("", response_model=ClinicalNoteResponse, status_code=status.HTTP_201_CREATED)
async def create_clinical_note(
    data: ClinicalNoteCreate,
    caller: CallerContext = Depends(get_caller),
    service: EncounterService = Depends(get_encounter_service)
):
    """Record the encounter note and complete the appointment in one step."""
    _, note = service.complete_with_note(data.appointment_id, caller, data)
    return ClinicalNoteResponse.model_validate(note)

@router.get("/appointment/{appointment_id}", response_model=ClinicalNoteResponse)
async def get_note_for_appointment(
    appointment_id: int,
    caller: CallerContext = Depends(get_caller),
    service: EncounterService = Depends(get_encounter_service)
):
    note = service.get_note_for_appointment(caller, appointment_id)
    return ClinicalNoteResponse.model_validate(note)

@router.get("/{note_id}", response_model=ClinicalNoteResponse)
async def get_clinical_note(
    note_id: int,
    caller: CallerContext = Depends(get_caller),
    service: EncounterService = Depends(get_encounter_service)
):
    note = service.get_note(caller, note_id)
    return ClinicalNoteResponse.model_validate(note)

@router.patch("/{note_id}", response_model=ClinicalNoteResponse)
async def amend_clinical_note(
    note_id: int,
    changes: ClinicalNoteUpdate,
    caller: CallerContext = Depends(get_caller),
    service: EncounterService = Depends(get_encounter_service)
):
    """Edit an unsigned note."""
    note = service.amend_note(caller, note_id, changes)
    return ClinicalNoteResponse.model_validate(note)

@router.put("/{note_id}/sign", response_model=ClinicalNoteResponse)
async def sign_clinical_note(
    note_id: int,
    caller: CallerContext = Depends(get_caller),
    service: EncounterService = Depends(get_encounter_service)
):
    """Sign and finalize a note. A signed note can no longer change."""
    note = service.sign_note(caller, note_id)
    return ClinicalNoteResponse.model_validate(note)
