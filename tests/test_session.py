import pytest

from vaccine_scheduler.core.exceptions import AuthorizationError, ErrorCode
from vaccine_scheduler.core.security import IdentityKind
from vaccine_scheduler.services.session import Identity, UserSession

BOB = Identity(kind=IdentityKind.PATIENT, username="bob")
ALICE = Identity(kind=IdentityKind.CAREGIVER, username="alice")


def test_new_session_is_empty():
    session = UserSession()

    assert not session.is_authenticated
    assert session.patient_username is None
    assert session.caregiver_username is None


def test_login_sets_principal():
    session = UserSession()
    session.login(BOB)

    assert session.principal == BOB
    assert session.patient_username == "bob"
    assert session.caregiver_username is None


def test_second_login_is_rejected():
    session = UserSession()
    session.login(BOB)

    with pytest.raises(AuthorizationError) as exc_info:
        session.login(ALICE)

    assert exc_info.value.code == ErrorCode.ALREADY_LOGGED_IN
    assert session.principal == BOB


def test_logout_clears_principal():
    session = UserSession(ALICE)

    assert session.logout() == ALICE
    assert not session.is_authenticated


def test_logout_without_login():
    with pytest.raises(AuthorizationError) as exc_info:
        UserSession().logout()

    assert exc_info.value.code == ErrorCode.NOT_LOGGED_IN


def test_require_kind_rejects_other_role():
    session = UserSession(ALICE)

    assert session.require_kind(IdentityKind.CAREGIVER) == ALICE
    with pytest.raises(AuthorizationError) as exc_info:
        session.require_kind(IdentityKind.PATIENT)
    assert exc_info.value.code == ErrorCode.WRONG_ROLE


def test_require_login_without_principal():
    with pytest.raises(AuthorizationError) as exc_info:
        UserSession().require_kind(IdentityKind.PATIENT)

    assert exc_info.value.code == ErrorCode.NOT_LOGGED_IN


@pytest.mark.parametrize("principal, kind, message", [
    (ALICE, IdentityKind.PATIENT, "Please login as a patient"),
    (BOB, IdentityKind.CAREGIVER, "Please login as a caregiver first!"),
])
def test_wrong_role_messages(principal, kind, message):
    with pytest.raises(AuthorizationError) as exc_info:
        UserSession(principal).require_kind(kind)

    assert exc_info.value.message == message
