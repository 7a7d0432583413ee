from decimal import Decimal
from typing import Any, Dict, Optional
import logging

import httpx

from ..core.config import settings
from ..models.appointment import Appointment
from ..models.practitioner import Practitioner

logger = logging.getLogger(__name__)

def booking_transaction(appointment: Appointment, practitioner: Practitioner) -> Dict[str, Any]:
    """Pending billing record for a newly booked appointment."""
    fee = practitioner.consultation_fee if practitioner.consultation_fee is not None else Decimal("0")
    return {
        "referenceId": f"APPT-{appointment.id}",
        "transactionType": "Billing",
        "status": "Pending",
        "amount": str(fee),
        "currency": settings.BILLING_CURRENCY,
        "patient": appointment.patient_id,
        "practitioner": appointment.practitioner_id,
        "appointment": appointment.id,
        "description": f"Consultation on {appointment.date.isoformat()} at {appointment.time_slot}",
    }

class BillingClient:
    """Sends transaction records to the external billing service.

    The booking is already committed when this runs, so delivery failures
    are logged and reported through the return value only.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return self.base_url is not None

    async def record_transaction(self, record: Dict[str, Any]) -> bool:
        if not self.enabled:
            logger.debug(f"Billing service not configured; skipping {record.get('referenceId')}")
            return False

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.post("/transactions", json=record)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send billing record {record.get('referenceId')}: {e}")
            return False

        logger.info(f"Billing record {record.get('referenceId')} accepted")
        return True

def get_billing_client() -> BillingClient:
    """Billing client dependency."""
    return BillingClient(settings.BILLING_SERVICE_URL, timeout=settings.BILLING_TIMEOUT_SECONDS)
