from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from ..core.database import transaction
from ..core.exceptions import AuthorizationError, ConflictError, ErrorCode
from ..core.security import IdentityKind, generate_salt, derive_verifier, verify_password
from ..models.caregiver import Caregiver
from ..models.patient import Patient
from .session import Identity

logger = logging.getLogger(__name__)

IDENTITY_MODELS = {
    IdentityKind.PATIENT: Patient,
    IdentityKind.CAREGIVER: Caregiver,
}

class AuthService:
    """Credential store for patients and caregivers."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, kind: IdentityKind, username: str, password: str) -> Identity:
        """Register a new identity of ``kind``."""
        model = IDENTITY_MODELS[kind]

        with transaction(self.db):
            # Check if username already exists for this kind
            existing = self.db.query(model).filter(
                model.username == username
            ).first()

            if existing:
                logger.warning(f"Registration rejected, {kind.value} username taken: {username}")
                raise ConflictError(ErrorCode.USERNAME_TAKEN, "Username taken, try again!")

            salt = generate_salt()
            record = model(
                username=username,
                salt=salt,
                password_hash=derive_verifier(password, salt)
            )
            self.db.add(record)
            try:
                self.db.flush()
            except IntegrityError:
                # Lost a race against a concurrent registration
                raise ConflictError(ErrorCode.USERNAME_TAKEN, "Username taken, try again!")

        logger.info(f"Registered {kind.value} {username}")
        return Identity(kind=kind, username=username)

    def authenticate(self, kind: IdentityKind, username: str, password: str) -> Identity:
        """Verify a login attempt and return the matching identity."""
        model = IDENTITY_MODELS[kind]
        with transaction(self.db):
            record = self.db.query(model).filter(
                model.username == username
            ).first()

            if not record or not verify_password(password, record.salt, record.password_hash):
                logger.warning(f"Failed {kind.value} login for {username}")
                raise AuthorizationError(ErrorCode.INVALID_CREDENTIALS, "Login failed.")

        return Identity(kind=kind, username=username)

    def exists(self, kind: IdentityKind, username: str) -> bool:
        model = IDENTITY_MODELS[kind]
        with transaction(self.db):
            return self.db.query(model).filter(model.username == username).first() is not None
