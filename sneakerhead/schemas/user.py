# sneakerhead/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. Anonymous shoppers have no account.
Role = Literal["user", "admin"]


class UserRegister(SQLModel):
    """
    Payload for creating an account.

    Validation rules:
      - email must be a valid EmailStr
      - username cannot be empty or whitespace
      - password must be at least 6 characters
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    full_name: str | None = Field(default=None, max_length=100)
    address: str | None = None
    phone: str | None = Field(default=None, max_length=30)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty")
        return v


class UserLogin(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class UserPublic(SQLModel):
    """Profile subset exposed on orders."""

    id: uuid.UUID
    username: str
    email: str
    full_name: str | None = None


class UserRead(UserPublic):
    """Response schema returned to the account owner and admins."""

    address: str | None = None
    phone: str | None = None
    role: Role
    created_at: datetime


class AuthResponse(UserRead):
    """Profile plus a freshly issued bearer token."""

    access_token: str
    token_type: str = "bearer"


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    All fields are optional; password is re-hashed when present.
    """

    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, max_length=50)
    email: EmailStr | None = None
    full_name: str | None = Field(default=None, max_length=100)
    address: str | None = None
    phone: str | None = Field(default=None, max_length=30)
    password: str | None = Field(default=None, min_length=6, max_length=128)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty")
        return v


class UserRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role
