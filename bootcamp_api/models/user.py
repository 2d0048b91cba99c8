"""
User data models.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# bcrypt only accepts this many bytes of input
MAX_PASSWORD_BYTES = 72


class Role(str, Enum):
    """User role."""
    USER = "user"
    PUBLISHER = "publisher"
    ADMIN = "admin"


def _check_password(value: str) -> str:
    if "password" in value.lower():
        raise ValueError('Password cannot contain "password"!')
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


class UserBase(BaseModel):
    """Base user model."""
    name: str = Field(..., min_length=1)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please provide your name!")
        return value

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class SignupRequest(UserBase):
    """Public signup. Admins can only be created by other admins."""
    password: str = Field(..., min_length=8)
    role: Role = Role.USER

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("role")
    @classmethod
    def no_self_promotion(cls, value: Role) -> Role:
        if value == Role.ADMIN:
            raise ValueError("Role is either: user or publisher")
        return value


class UserCreate(UserBase):
    """Model for an admin creating a new user."""
    password: str = Field(..., min_length=8)
    role: Role = Role.USER

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class UserInDB(UserBase):
    """User model as stored in database."""
    id: str
    role: Role = Role.USER
    password_hash: str
    password_changed_at: Optional[datetime] = None
    tokens: List[str] = []
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    avatar_path: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserResponse(BaseModel):
    """User model for API responses (no credentials)."""
    id: str
    name: str
    email: EmailStr
    role: Role
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserUpdateMe(BaseModel):
    """Fields a user may change on their own profile."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class UserUpdate(BaseModel):
    """Fields an admin may change on any profile."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class TokenData(BaseModel):
    """Claims decoded from a session token."""
    user_id: str
    issued_at: datetime
    expires_at: datetime


class LoginRequest(BaseModel):
    """Login request model."""
    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=8)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class UpdatePasswordRequest(BaseModel):
    password_current: str
    password: str = Field(..., min_length=8)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password(value)


class AuthResponse(BaseModel):
    """Token echoed alongside the cookie."""
    status: str = "success"
    token: str
    data: UserResponse
