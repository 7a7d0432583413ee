from types import SimpleNamespace

import pytest

from healthme.core.caller import CallerContext, UnknownPrincipalError
from healthme.core.exceptions import AuthorizationError
from healthme.core.policy import (
    Action,
    can_book,
    can_mutate,
    can_view,
    ensure_can_mutate,
    ensure_can_view,
)
from healthme.core.security import UserRole

RECORD = SimpleNamespace(patient_id=1, practitioner_id=7)

PATIENT = CallerContext.patient(identity_id=10, profile_id=1)
OTHER_PATIENT = CallerContext.patient(identity_id=11, profile_id=2)
PRACTITIONER = CallerContext.practitioner(identity_id=20, profile_id=7)
OTHER_PRACTITIONER = CallerContext.practitioner(identity_id=21, profile_id=8)
ADMIN = CallerContext.admin(identity_id=30)


class TestCallerContext:

    def test_roles(self):
        assert PATIENT.role == UserRole.PATIENT
        assert PRACTITIONER.role == UserRole.PRACTITIONER
        assert ADMIN.role == UserRole.ADMIN

    def test_profile_ids(self):
        assert PATIENT.profile_id == 1
        assert PRACTITIONER.profile_id == 7
        assert ADMIN.profile_id is None

    def test_unknown_principal_is_not_silently_denied(self):
        caller = CallerContext(identity_id=99, principal=object())

        with pytest.raises(UnknownPrincipalError):
            caller.role
        with pytest.raises(UnknownPrincipalError):
            can_view(RECORD, caller)
        with pytest.raises(UnknownPrincipalError):
            can_mutate(RECORD, caller, Action.CANCEL)
        with pytest.raises(UnknownPrincipalError):
            can_book(caller)


class TestViewing:

    @pytest.mark.parametrize("caller", [PATIENT, PRACTITIONER, ADMIN])
    def test_parties_can_view(self, caller):
        assert can_view(RECORD, caller)

    @pytest.mark.parametrize("caller", [OTHER_PATIENT, OTHER_PRACTITIONER])
    def test_outsiders_cannot_view(self, caller):
        assert not can_view(RECORD, caller)

    def test_ensure_uses_given_message(self):
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_can_view(RECORD, OTHER_PATIENT, "Unauthorized to view this appointment.")
        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Unauthorized to view this appointment."


class TestMutations:

    def test_only_patients_book(self):
        assert can_book(PATIENT)
        assert not can_book(PRACTITIONER)
        assert not can_book(ADMIN)

    def test_patient_may_only_cancel_own(self):
        assert can_mutate(RECORD, PATIENT, Action.CANCEL)
        assert not can_mutate(RECORD, OTHER_PATIENT, Action.CANCEL)
        for action in (Action.CONFIRM, Action.COMPLETE, Action.RESCHEDULE, Action.WRITE_NOTE):
            assert not can_mutate(RECORD, PATIENT, action)

    @pytest.mark.parametrize("action", [
        Action.CONFIRM,
        Action.CANCEL,
        Action.COMPLETE,
        Action.RESCHEDULE,
        Action.WRITE_NOTE,
        Action.AMEND_NOTE,
        Action.SIGN_NOTE,
    ])
    def test_assigned_practitioner(self, action):
        assert can_mutate(RECORD, PRACTITIONER, action)
        assert not can_mutate(RECORD, OTHER_PRACTITIONER, action)

    def test_admin_manages_but_does_not_document(self):
        for action in (Action.CONFIRM, Action.CANCEL, Action.RESCHEDULE):
            assert can_mutate(RECORD, ADMIN, action)
        for action in (Action.COMPLETE, Action.WRITE_NOTE, Action.SIGN_NOTE):
            assert not can_mutate(RECORD, ADMIN, action)

    def test_denial_messages(self):
        with pytest.raises(AuthorizationError) as exc_info:
            ensure_can_mutate(RECORD, OTHER_PRACTITIONER, Action.WRITE_NOTE)
        assert exc_info.value.detail == "Unauthorized: Note must be created by the assigned practitioner."
