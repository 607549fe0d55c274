"""Pydantic schemas for the branch registry."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from depot.schemas.user import UserRead

_BRANCH_RE = re.compile(r"^[A-Za-z0-9\s\-_]+$")


class BranchCreate(BaseModel):
    name: str
    description: str | None = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not 1 <= len(v) <= 100:
            raise ValueError("Branch name must be between 1 and 100 characters")
        if not _BRANCH_RE.match(v):
            raise ValueError(
                "Branch name can only contain letters, numbers, spaces, hyphens, and underscores"
            )
        return v


class BranchUpdate(BranchCreate):
    pass


class BranchSummary(BaseModel):
    name: str
    active_workers: int = 0
    total_orders: int = 0
    pending_orders: int = 0


class BranchListResponse(BaseModel):
    branches: list[BranchSummary]


class BranchDetail(BaseModel):
    name: str
    description: str | None
    active_workers: int
    total_workers: int
    total_orders: int
    pending_orders: int
    completed_orders: int
    workers: list[UserRead]


class BranchRenameResponse(BaseModel):
    message: str
    old_name: str
    new_name: str
