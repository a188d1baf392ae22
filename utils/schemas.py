"""
Pydantic schemas for the auth API.

JSON keys are camelCase on the wire; Python attributes stay snake_case.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.validators import check_date_of_birth, check_name, check_password_strength


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str
    date_of_birth: date

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, value: str) -> str:
        return check_name(value, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, value: str) -> str:
        return check_name(value, "Last name")

    @field_validator("date_of_birth")
    @classmethod
    def _adult(cls, value: date) -> date:
        return check_date_of_birth(value)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshRequest(CamelModel):
    # Optional so a missing token gets the 400 "Refresh token required" envelope
    refresh_token: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class UserView(CamelModel):
    """Sanitized user; never carries the password hash."""

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    is_verified: bool = False
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands timestamps back without tzinfo
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_user(cls, user) -> "UserView":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_verified=bool(user.is_verified),
            created_at=user.created_at,
        )


class AuthPayload(CamelModel):
    user: UserView
    tokens: TokenPair
