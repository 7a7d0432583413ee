"""
Access policy for appointments and clinical notes.

Every rule takes the record being touched and the explicit ``CallerContext``
and dispatches on the caller's principal. Records only need ``patient_id``
and ``practitioner_id`` attributes, so the same viewing rule covers both
appointments and notes. A principal type that a rule does not handle raises
``UnknownPrincipalError`` instead of silently denying.
"""

import enum

from .caller import (
    AdminPrincipal,
    CallerContext,
    PatientPrincipal,
    PractitionerPrincipal,
    UnknownPrincipalError,
)
from .exceptions import AuthorizationError


class Action(str, enum.Enum):
    BOOK = "book"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    RESCHEDULE = "reschedule"
    WRITE_NOTE = "write_note"
    AMEND_NOTE = "amend_note"
    SIGN_NOTE = "sign_note"


# Which parties may perform each mutation
_PATIENT_ACTIONS = {Action.BOOK, Action.CANCEL}
_PRACTITIONER_ACTIONS = {
    Action.CONFIRM,
    Action.CANCEL,
    Action.COMPLETE,
    Action.RESCHEDULE,
    Action.WRITE_NOTE,
    Action.AMEND_NOTE,
    Action.SIGN_NOTE,
}
_ADMIN_ACTIONS = {Action.CONFIRM, Action.CANCEL, Action.RESCHEDULE}

_DENIAL_MESSAGES = {
    Action.BOOK: "Only patients can book appointments for themselves.",
    Action.CONFIRM: "Only the assigned practitioner or an admin can confirm this appointment.",
    Action.CANCEL: "Unauthorized to cancel this appointment.",
    Action.COMPLETE: "Only the assigned practitioner can complete this appointment.",
    Action.RESCHEDULE: "Only the assigned practitioner or an admin can reschedule this appointment.",
    Action.WRITE_NOTE: "Unauthorized: Note must be created by the assigned practitioner.",
    Action.AMEND_NOTE: "Unauthorized: Only the originating practitioner can amend the note.",
    Action.SIGN_NOTE: "Unauthorized: Only the originating practitioner can sign the note.",
}


def can_view(record, caller: CallerContext) -> bool:
    """Patient on the record, its practitioner, or any admin."""
    principal = caller.principal
    if isinstance(principal, PatientPrincipal):
        return record.patient_id == principal.profile_id
    if isinstance(principal, PractitionerPrincipal):
        return record.practitioner_id == principal.profile_id
    if isinstance(principal, AdminPrincipal):
        return True
    raise UnknownPrincipalError(principal)


def can_mutate(record, caller: CallerContext, action: Action) -> bool:
    principal = caller.principal
    if isinstance(principal, PatientPrincipal):
        return action in _PATIENT_ACTIONS and record.patient_id == principal.profile_id
    if isinstance(principal, PractitionerPrincipal):
        return action in _PRACTITIONER_ACTIONS and record.practitioner_id == principal.profile_id
    if isinstance(principal, AdminPrincipal):
        return action in _ADMIN_ACTIONS
    raise UnknownPrincipalError(principal)


def can_book(caller: CallerContext) -> bool:
    principal = caller.principal
    if isinstance(principal, PatientPrincipal):
        return True
    if isinstance(principal, (PractitionerPrincipal, AdminPrincipal)):
        return False
    raise UnknownPrincipalError(principal)


def ensure_can_view(record, caller: CallerContext, detail: str = "Unauthorized to view this record.") -> None:
    if not can_view(record, caller):
        raise AuthorizationError(detail)


def ensure_can_mutate(record, caller: CallerContext, action: Action) -> None:
    if not can_mutate(record, caller, action):
        raise AuthorizationError(_DENIAL_MESSAGES[action])


def ensure_can_book(caller: CallerContext) -> None:
    if not can_book(caller):
        raise AuthorizationError(_DENIAL_MESSAGES[Action.BOOK])
