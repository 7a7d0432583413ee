from fastapi import APIRouter, BackgroundTasks, Depends, status

from ...api.deps import booking_rate_limit, get_appointment_service, get_caller
from ...core.caller import CallerContext
from ...schemas.appointment import (
    AppointmentCreate, AppointmentList, AppointmentResponse,
    AppointmentStatusResponse, AppointmentStatusUpdate
)
from ...schemas.clinical_note import ClinicalNoteResponse
from ...services.appointment_service import AppointmentService
from ...services.billing_client import BillingClient, booking_transaction, get_billing_client

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def _as_list(appointments) -> AppointmentList:
    return AppointmentList(
        count=len(appointments),
        data=[AppointmentResponse.model_validate(a) for a in appointments]
    )

@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limit)]
)
async def create_appointment(
    data: AppointmentCreate,
    background_tasks: BackgroundTasks,
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service),
    billing: BillingClient = Depends(get_billing_client)
):
    """Book a new appointment with a practitioner (patients only)."""
    appointment = service.create_appointment(caller, data)

    if billing.enabled:
        background_tasks.add_task(
            billing.record_transaction,
            booking_transaction(appointment, appointment.practitioner)
        )

    return AppointmentResponse.model_validate(appointment)

@router.get("/my", response_model=AppointmentList)
async def get_my_appointments(
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Appointments of the authenticated patient or practitioner, newest first."""
    return _as_list(service.list_for_caller(caller))

@router.get("/upcoming", response_model=AppointmentList)
async def get_upcoming_appointments(
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Future appointments that still hold their slot, soonest first."""
    return _as_list(service.list_upcoming(caller))

@router.get("/history", response_model=AppointmentList)
async def get_appointment_history(
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Completed and cancelled appointments."""
    return _as_list(service.list_history(caller))

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    appointment = service.get_appointment(caller, appointment_id)
    return AppointmentResponse.model_validate(appointment)

@router.put("/{appointment_id}/status", response_model=AppointmentStatusResponse)
async def update_appointment_status(
    appointment_id: int,
    update: AppointmentStatusUpdate,
    caller: CallerContext = Depends(get_caller),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Confirm, cancel, complete or reschedule an appointment."""
    appointment, note = service.update_status(caller, appointment_id, update)

    return AppointmentStatusResponse(
        message=f"Appointment status updated to {appointment.status.value}.",
        data=AppointmentResponse.model_validate(appointment),
        clinical_note=ClinicalNoteResponse.model_validate(note) if note is not None else None
    )
