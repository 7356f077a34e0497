from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from uuid import UUID
from datetime import datetime
from p100.services.players import PRIORITY_MAX

CharacterType = Literal["killer", "survivor"]


class PlayerPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    character_type: CharacterType
    character_id: str
    p200: bool
    legacy: bool
    favorite: bool
    priority: int
    added_at: datetime


class RecentPlayer(PlayerPublic):
    character_name: str | None = None
    character_image_url: str | None = None


class UsernameCount(BaseModel):
    username: str
    count: int


class ProfileEntry(BaseModel):
    character_type: CharacterType
    character_id: str
    character_name: str
    image_url: str
    p200: bool
    legacy: bool
    favorite: bool
    added_at: datetime


class PlayerProfile(BaseModel):
    username: str
    total: int
    killers: list[ProfileEntry] = Field(default_factory=list)
    survivors: list[ProfileEntry] = Field(default_factory=list)


class PlayerCreate(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    character_type: CharacterType
    character_id: str
    p200: bool = False
    legacy: bool = False
    favorite: bool = False
    priority: int = Field(default=0, ge=0, le=PRIORITY_MAX)


class PlayerUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=50)
    p200: bool | None = None
    legacy: bool | None = None
    favorite: bool | None = None
    priority: int | None = Field(default=None, ge=0, le=PRIORITY_MAX)


class PriorityResult(BaseModel):
    success: bool
    message: str
