from pydantic import BaseModel, EmailStr, validator
from typing import Optional
from datetime import datetime

from ..config import settings


def _check_password(v: str) -> str:
    if len(v) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")
    return v


class RegisterRequest(BaseModel):
    username: str
    email: EmailStr
    password: str

    @validator('username')
    def username_must_not_be_empty(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username cannot be empty")
        if "@" in v:
            raise ValueError("Username cannot contain '@'")
        return v

    @validator('password')
    def validate_password(cls, v):
        return _check_password(v)


class LoginRequest(BaseModel):
    login: str  # username or email
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    newPassword: str

    @validator('newPassword')
    def validate_new_password(cls, v):
        return _check_password(v)


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    is_active: bool = True
    is_admin: bool = False
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserOut


class ToggleBanRequest(BaseModel):
    userId: int


class ChangePasswordRequest(BaseModel):
    userId: int
    newPassword: str

    @validator('newPassword')
    def validate_new_password(cls, v):
        return _check_password(v)
