"""Pydantic schemas for login and JWT tokens."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from depot.schemas.user import UserRead


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username", "password")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field is required")
        return v


class AuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserRead
