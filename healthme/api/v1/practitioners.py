from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.deps import get_caller
from ...core.caller import CallerContext
from ...core.database import get_db
from ...core.exceptions import NotFoundError
from ...models.practitioner import Practitioner
from ...schemas.appointment import AvailabilityResponse
from ...services.availability import AvailabilityChecker

router = APIRouter(prefix="/practitioners", tags=["Practitioners"])

@router.get("/{practitioner_id}/availability", response_model=AvailabilityResponse)
async def check_availability(
    practitioner_id: int,
    slot_date: date = Query(..., alias="date"),
    time_slot: str = Query(..., alias="timeSlot", min_length=1, max_length=20),
    db: Session = Depends(get_db),
    _: CallerContext = Depends(get_caller)
):
    """Whether the practitioner can still be booked for the given slot."""
    practitioner = db.query(Practitioner).filter(Practitioner.id == practitioner_id).first()
    if not practitioner or not practitioner.is_active:
        raise NotFoundError("Practitioner not found.")

    available = AvailabilityChecker(db).is_available(practitioner_id, slot_date, time_slot)
    return AvailabilityResponse(
        practitioner_id=practitioner_id,
        date=slot_date,
        time_slot=time_slot,
        available=available
    )
