from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.caller import CallerContext
from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import AuthenticationError, RateLimitError
from ..core.security import security, verify_token, UserRole, TokenPayload
from ..models.user import User
from ..models.patient import Patient
from ..models.practitioner import Practitioner
from ..services.appointment_service import AppointmentService
from ..services.encounter_service import EncounterService

logger = logging.getLogger(__name__)

async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub or not token_payload.sub.isdigit():
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == int(token_payload.sub)).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user

async def get_caller(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CallerContext:
    """Resolve the authenticated user into role and profile reference."""
    if current_user.role == UserRole.ADMIN:
        return CallerContext.admin(current_user.id)

    if current_user.role == UserRole.PATIENT:
        profile = db.query(Patient).filter(Patient.user_id == current_user.id).first()
        if not profile:
            raise AuthenticationError("No patient profile is linked to this account")
        return CallerContext.patient(current_user.id, profile.id)

    if current_user.role == UserRole.PRACTITIONER:
        profile = db.query(Practitioner).filter(Practitioner.user_id == current_user.id).first()
        if not profile:
            raise AuthenticationError("No practitioner profile is linked to this account")
        return CallerContext.practitioner(current_user.id, profile.id)

    raise AuthenticationError("Invalid user role detected")

def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)

def get_encounter_service(db: Session = Depends(get_db)) -> EncounterService:
    """Dependency injection for EncounterService"""
    return EncounterService(db)

# Rate limiting dependency
async def booking_rate_limit(
    caller: CallerContext = Depends(get_caller),
    redis_client = Depends(get_redis)
) -> None:
    """Cap how many bookings one identity can attempt per window."""
    key = f"rate_limit:booking:{caller.identity_id}"

    current_requests = redis_client.incr(key)
    if current_requests == 1:
        redis_client.expire(key, settings.BOOKING_RATE_WINDOW_SECONDS)

    if current_requests > settings.BOOKING_RATE_LIMIT:
        logger.warning(f"Booking rate limit exceeded for user {caller.identity_id}")
        raise RateLimitError()
