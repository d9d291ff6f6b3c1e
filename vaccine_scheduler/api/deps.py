from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import AuthorizationError, ErrorCode
from ..core.security import security, verify_token, TokenPayload
from ..services.auth_service import AuthService
from ..services.session import Identity, UserSession

REVOKED_TOKEN_KEY = "revoked_token:{jti}"

def is_token_revoked(jti: str, redis_client) -> bool:
    return redis_client.get(REVOKED_TOKEN_KEY.format(jti=jti)) is not None

async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis_client = Depends(get_redis)
) -> Optional[TokenPayload]:
    """Decode the bearer token if one was sent.

    A request without a token has no session; a token that was sent but
    is invalid, expired or revoked is rejected.
    """
    if credentials is None:
        return None

    token_payload = verify_token(credentials.credentials)
    if (
        not token_payload
        or token_payload.token_type != "access"
        or not token_payload.sub
        or not token_payload.kind
        or not token_payload.jti
    ):
        raise AuthorizationError(ErrorCode.NOT_LOGGED_IN, "Invalid or expired token")

    if is_token_revoked(token_payload.jti, redis_client):
        raise AuthorizationError(ErrorCode.NOT_LOGGED_IN, "Token has been revoked")

    return token_payload

async def get_user_session(
    token_payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> UserSession:
    """Rebuild the caller's session from its token."""
    if token_payload is None:
        return UserSession()

    if not AuthService(db).exists(token_payload.kind, token_payload.sub):
        raise AuthorizationError(ErrorCode.NOT_LOGGED_IN, "User not found")

    return UserSession(Identity(kind=token_payload.kind, username=token_payload.sub))

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic rate limiting for credential endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, 3600, 1)  # one hour window
    else:
        if int(current_requests) >= settings.RATE_LIMIT_PER_HOUR:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
