"""
Account request/response bodies and the decoded JWT payload.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

USERNAME_MIN, USERNAME_MAX = 3, 100
PASSWORD_MIN, PASSWORD_MAX = 8, 100


class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=USERNAME_MIN, max_length=USERNAME_MAX)
    password: str = Field(..., min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Public profile. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    username: str
    is_active: bool
    blur_enabled: bool
    created_at: datetime


class PrivacySettings(BaseModel):
    """Whether clients should render this user's photos blurred."""

    model_config = ConfigDict(from_attributes=True)

    blur_enabled: bool


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    sub: int  # user id
    exp: datetime
