from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime


class LoginRequest(BaseModel):
    password: str


class AdminToken(BaseModel):
    access: str
    token_type: str = "bearer"
    expires_in: int


class StorageItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    path: str
    bucket: str
    public_url: str
    size: int
    last_modified: datetime | None = None


class RenameRequest(BaseModel):
    path: str = Field(min_length=1)
    new_name: str = Field(min_length=1)


class FolderRequest(BaseModel):
    name: str = Field(min_length=1)


class SweepReport(BaseModel):
    success: bool
    message: str
    old_url: str | None = None
    new_url: str | None = None
    updated: int = 0
    failed: int = 0


class BlacklistIn(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    reason: str | None = None


class BlacklistPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    reason: str | None = None
    created_by: str | None = None
    created_at: datetime
