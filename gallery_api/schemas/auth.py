from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from gallery_api.schemas.profile import ProfileResponse


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=100)


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    token: str
    user: ProfileResponse


class SessionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    expires_at: datetime = Field(alias="expiresAt")


class SessionResponse(BaseModel):
    session: SessionInfo
    user: ProfileResponse


class MagicLinkRequest(BaseModel):
    email: EmailStr


class MagicLinkRequestResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    token_preview: str | None = Field(default=None, alias="tokenPreview")


class MagicLinkVerifyRequest(BaseModel):
    token: str
