from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import AuthorizationError, ErrorCode
from ..core.security import IdentityKind

WRONG_ROLE_MESSAGES = {
    IdentityKind.PATIENT: "Please login as a patient",
    IdentityKind.CAREGIVER: "Please login as a caregiver first!",
}


@dataclass(frozen=True)
class Identity:
    """An authenticated account: a patient or a caregiver."""
    kind: IdentityKind
    username: str


class UserSession:
    """Holds at most one authenticated principal for one caller."""

    def __init__(self, principal: Optional[Identity] = None):
        self._principal = principal

    @property
    def principal(self) -> Optional[Identity]:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    @property
    def patient_username(self) -> Optional[str]:
        if self._principal and self._principal.kind == IdentityKind.PATIENT:
            return self._principal.username
        return None

    @property
    def caregiver_username(self) -> Optional[str]:
        if self._principal and self._principal.kind == IdentityKind.CAREGIVER:
            return self._principal.username
        return None

    def login(self, identity: Identity) -> None:
        if self._principal is not None:
            raise AuthorizationError(ErrorCode.ALREADY_LOGGED_IN, "User already logged in.")
        self._principal = identity

    def logout(self) -> Identity:
        if self._principal is None:
            raise AuthorizationError(ErrorCode.NOT_LOGGED_IN, "Please login first!")
        principal, self._principal = self._principal, None
        return principal

    def require_login(self) -> Identity:
        if self._principal is None:
            raise AuthorizationError(ErrorCode.NOT_LOGGED_IN, "Please login first!")
        return self._principal

    def require_kind(self, kind: IdentityKind) -> Identity:
        """Return the principal if it is of ``kind``, otherwise fail."""
        principal = self.require_login()
        if principal.kind != kind:
            raise AuthorizationError(ErrorCode.WRONG_ROLE, WRONG_ROLE_MESSAGES[kind])
        return principal
