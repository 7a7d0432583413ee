"""Resolved identity of the caller, passed explicitly into every core operation."""

from dataclasses import dataclass
from typing import Optional, Union

from .security import UserRole


@dataclass(frozen=True)
class PatientPrincipal:
    profile_id: int


@dataclass(frozen=True)
class PractitionerPrincipal:
    profile_id: int


@dataclass(frozen=True)
class AdminPrincipal:
    pass


Principal = Union[PatientPrincipal, PractitionerPrincipal, AdminPrincipal]


class UnknownPrincipalError(TypeError):
    def __init__(self, principal):
        super().__init__(f"Unhandled principal type: {type(principal).__name__}")


@dataclass(frozen=True)
class CallerContext:
    identity_id: int
    principal: Principal

    @property
    def role(self) -> UserRole:
        if isinstance(self.principal, PatientPrincipal):
            return UserRole.PATIENT
        if isinstance(self.principal, PractitionerPrincipal):
            return UserRole.PRACTITIONER
        if isinstance(self.principal, AdminPrincipal):
            return UserRole.ADMIN
        raise UnknownPrincipalError(self.principal)

    @property
    def profile_id(self) -> Optional[int]:
        if isinstance(self.principal, (PatientPrincipal, PractitionerPrincipal)):
            return self.principal.profile_id
        if isinstance(self.principal, AdminPrincipal):
            return None
        raise UnknownPrincipalError(self.principal)

    @classmethod
    def patient(cls, identity_id: int, profile_id: int) -> "CallerContext":
        return cls(identity_id, PatientPrincipal(profile_id))

    @classmethod
    def practitioner(cls, identity_id: int, profile_id: int) -> "CallerContext":
        return cls(identity_id, PractitionerPrincipal(profile_id))

    @classmethod
    def admin(cls, identity_id: int) -> "CallerContext":
        return cls(identity_id, AdminPrincipal())
