from pydantic import BaseModel, Field

from ..core.security import IdentityKind

class Credentials(BaseModel):
    kind: IdentityKind
    username: str = Field(..., min_length=1, max_length=255, pattern=r"^\S+$")
    password: str = Field(..., min_length=1)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    kind: IdentityKind
    username: str

class PrincipalResponse(BaseModel):
    kind: IdentityKind
    username: str
