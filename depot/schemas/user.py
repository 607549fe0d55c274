"""Pydantic schemas for User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

VALID_POSITIONS = ("admin", "worker", "editor")

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,30}$")


def _check_username(v: str) -> str:
    v = v.strip()
    if not 3 <= len(v) <= 30:
        raise ValueError("Username must be between 3 and 30 characters")
    if not _USERNAME_RE.match(v):
        raise ValueError("Username can only contain letters, numbers, and underscores")
    return v


def _check_password(v: str) -> str:
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters long")
    return v


def _check_position(v: str) -> str:
    if v not in VALID_POSITIONS:
        raise ValueError(f"Position must be one of: {', '.join(VALID_POSITIONS)}")
    return v


def _check_branch(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Branch name must not be empty if provided")
    return v


class UserCreate(BaseModel):
    username: str
    password: str
    position: str = "worker"
    branch: str | None = None

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("position")
    @classmethod
    def _position(cls, v: str) -> str:
        return _check_position(v)

    @field_validator("branch")
    @classmethod
    def _branch(cls, v: str | None) -> str | None:
        return _check_branch(v)


class UserUpdate(BaseModel):
    username: str | None = None
    password: str | None = None
    position: str | None = None
    branch: str | None = None
    is_active: bool | None = None

    @field_validator("username")
    @classmethod
    def _username(cls, v: str | None) -> str | None:
        return None if v is None else _check_username(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str | None) -> str | None:
        return None if v is None else _check_password(v)

    @field_validator("position")
    @classmethod
    def _position(cls, v: str | None) -> str | None:
        return None if v is None else _check_position(v)

    @field_validator("branch")
    @classmethod
    def _branch(cls, v: str | None) -> str | None:
        return _check_branch(v)


class UserRead(BaseModel):
    id: int
    username: str
    position: str
    branch: str | None
    is_active: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: list[UserRead]
    total: int


class BranchCount(BaseModel):
    branch: str | None
    count: int


class UserStats(BaseModel):
    total_users: int
    active_users: int
    admin_count: int
    worker_count: int
    editor_count: int
    branch_stats: list[BranchCount]


class BranchNamesResponse(BaseModel):
    branches: list[str]
