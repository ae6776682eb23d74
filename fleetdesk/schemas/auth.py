from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import Optional, Dict, Any

from fleetdesk.models.profile import UserRoleEnum
from fleetdesk.schemas.profile import ProfileResponse


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """What the auth interface hands back; tokens are absent until the account is confirmed."""
    user: Optional[AuthUser] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str
    last_name: str
    role: UserRoleEnum = UserRoleEnum.ADMIN
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    timezone: str = "UTC"

    model_config = ConfigDict(use_enum_values=True)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    password: str = Field(..., min_length=6)


class AuthResult(BaseModel):
    user: Optional[AuthUser] = None
    session: Optional[AuthSession] = None
    profile: Optional[ProfileResponse] = None
