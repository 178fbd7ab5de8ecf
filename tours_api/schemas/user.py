# tours_api/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlmodel import SQLModel

from tours_api.core.security import MAX_PASSWORD_BYTES

# App-level roles. Anonymous visitors have no token, so they are not stored.
Role = Literal["user", "guide", "lead-guide", "admin"]
ROLES: tuple[str, ...] = ("user", "guide", "lead-guide", "admin")

PASSWORD_MIN_LENGTH = 8


def _normalize_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty")
    return v


def _normalize_email(v):
    if not isinstance(v, str):
        return v
    return v.strip().lower()


def _check_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


# ----- Responses -----


class UserRead(SQLModel):
    """
    Response schema returned to clients.

    Password and reset fields are never part of it.
    """

    id: uuid.UUID
    name: str
    email: EmailStr
    role: Role
    created_at: datetime


class UserEnvelope(BaseModel):
    user: UserRead | None


class AuthResponse(BaseModel):
    """Envelope for every workflow that logs the user in."""

    status: Literal["success"] = "success"
    token: str
    data: UserEnvelope


class UserResponse(BaseModel):
    status: Literal["success"] = "success"
    data: UserEnvelope


class MessageResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str | None = None


# ----- Requests -----


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(max_length=50)
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    password_confirm: str = Field(alias="passwordConfirm")

    normalize_name = field_validator("name")(_normalize_name)
    check_password = field_validator("password")(_check_password_bytes)
    normalize_email = field_validator("email", mode="before")(_normalize_email)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    password_confirm: str = Field(alias="passwordConfirm")

    check_password = field_validator("password")(_check_password_bytes)


class UpdatePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password_current: str = Field(alias="passwordCurrent", min_length=1)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    password_confirm: str = Field(alias="passwordConfirm")

    check_password = field_validator("password")(_check_password_bytes)


class UserUpdate(BaseModel):
    """
    Partial profile update for authenticated users.

    Password fields are accepted only so the service can reject them with
    a pointer to /updateMyPassword.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    password: str | None = None
    password_confirm: str | None = Field(default=None, alias="passwordConfirm")

    normalize_name = field_validator("name")(_normalize_name)
    normalize_email = field_validator("email", mode="before")(_normalize_email)


class UserRoleUpdate(BaseModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role
