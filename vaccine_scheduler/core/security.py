from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import HTTPBearer
from pydantic import BaseModel
import secrets
import uuid
from enum import Enum

from .config import settings

# Password hashing; the salt is generated and stored by the caller
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Bearer tokens are optional so login can detect an already open session
security = HTTPBearer(auto_error=False)

class IdentityKind(str, Enum):
    PATIENT = "patient"
    CAREGIVER = "caregiver"

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    kind: Optional[IdentityKind] = None
    jti: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

# Password utilities
def generate_salt() -> bytes:
    """Generate a fresh random salt of the configured length."""
    return secrets.token_bytes(settings.SALT_BYTES)

def derive_verifier(password: str, salt: bytes) -> str:
    """Derive a PBKDF2 verifier from a password and a stored salt."""
    handler = pwd_context.handler("pbkdf2_sha256").using(
        salt=salt,
        rounds=settings.PASSWORD_HASH_ROUNDS
    )
    return handler.hash(password)

def verify_password(plain_password: str, salt: bytes, verifier: str) -> bool:
    """Re-derive with the stored salt and compare in constant time."""
    candidate = derive_verifier(plain_password, salt)
    return secrets.compare_digest(candidate.encode(), verifier.encode())

# JWT utilities
def create_access_token(
    username: str,
    kind: IdentityKind,
    expires_delta: Optional[timedelta] = None
) -> Token:
    """Create a JWT access token naming the session principal."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": username,
        "kind": kind.value,
        "jti": uuid.uuid4().hex,
        "exp": datetime.utcnow() + expires_delta,
        "token_type": "access"
    }

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return Token(
        access_token=encoded_jwt,
        expires_in=int(expires_delta.total_seconds())
    )

def verify_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )

        return TokenPayload(**payload)

    except (JWTError, ValueError):
        return None
