"""Pydantic v2 schemas for identity endpoints."""
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class UpdateProfileRequest(BaseModel):
    """Only the fields present in the body are changed; null clears one."""

    model_config = ConfigDict(extra="forbid")

    display_name: str | None = Field(default=None, max_length=100)
    profile_picture_url: str | None = Field(default=None, max_length=2048)
    preferences: dict[str, Any] | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


class AccountResponse(BaseModel):
    id: UUID
    email: str
    status: str
    has_password: bool
    delegated_provider: str | None
    created_at: datetime
    last_login_at: datetime | None
    display_name: str | None = None
    profile_picture_url: str | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    id_prefix: str
    current: bool
    issued_at: datetime
    expires_at: datetime
    user_agent: str | None
    ip_address: str | None


class RevokedResponse(BaseModel):
    revoked: int
