from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import time
import logging

from ...core.database import get_db, get_redis
from ...core.exceptions import AuthorizationError, ErrorCode
from ...core.security import create_access_token
from ...api.deps import (
    get_token_payload, get_user_session, rate_limit_check, REVOKED_TOKEN_KEY
)
from ...services.auth_service import AuthService
from ...services.session import Identity, UserSession
from ...schemas.auth import Credentials, TokenResponse, PrincipalResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _issue_token(identity: Identity) -> TokenResponse:
    token = create_access_token(identity.username, identity.kind)
    return TokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
        kind=identity.kind,
        username=identity.username
    )

@router.post("/register", response_model=TokenResponse)
async def register(
    credentials: Credentials,
    db: Session = Depends(get_db),
    user_session: UserSession = Depends(get_user_session),
    _: None = Depends(rate_limit_check)
):
    """Create a patient or caregiver account and log it in."""
    if user_session.is_authenticated:
        raise AuthorizationError(ErrorCode.ALREADY_LOGGED_IN, "User already logged in.")

    identity = AuthService(db).register(
        credentials.kind, credentials.username, credentials.password
    )
    user_session.login(identity)
    return _issue_token(identity)

@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: Credentials,
    db: Session = Depends(get_db),
    user_session: UserSession = Depends(get_user_session),
    _: None = Depends(rate_limit_check)
):
    """Authenticate and return an access token."""
    if user_session.is_authenticated:
        raise AuthorizationError(ErrorCode.ALREADY_LOGGED_IN, "User already logged in.")

    identity = AuthService(db).authenticate(
        credentials.kind, credentials.username, credentials.password
    )
    user_session.login(identity)
    logger.info(f"Logged in {identity.kind.value} {identity.username}")
    return _issue_token(identity)

@router.post("/logout")
async def logout(
    user_session: UserSession = Depends(get_user_session),
    token_payload = Depends(get_token_payload),
    redis_client = Depends(get_redis)
):
    """Revoke the presented token until it would have expired."""
    principal = user_session.logout()

    ttl = max(int(token_payload.exp - time.time()), 1)
    redis_client.setex(REVOKED_TOKEN_KEY.format(jti=token_payload.jti), ttl, 1)

    logger.info(f"Logged out {principal.kind.value} {principal.username}")
    return {"message": "Successfully logged out!"}

@router.get("/me", response_model=PrincipalResponse)
async def get_current_principal(
    user_session: UserSession = Depends(get_user_session)
):
    """Get the current session principal."""
    principal = user_session.require_login()
    return PrincipalResponse(kind=principal.kind, username=principal.username)
