from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

Platform = Literal["twitter", "instagram", "youtube"]
UsageType = Literal["gallery", "header", "legacy_header", "background"]


class ArtistIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    url: str = Field(min_length=1)
    platform: Platform


class ArtistPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    url: str
    platform: str


class CreditRow(ArtistPublic):
    artwork_count: int


class ArtworkUsage(BaseModel):
    character_id: str
    character_type: Literal["killer", "survivor"]
    character_name: str
    usage_type: UsageType
    display_order: int | None = None


class ArtworkPublic(BaseModel):
    id: UUID
    artwork_url: str
    artist: ArtistPublic | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    usages: list[ArtworkUsage] = Field(default_factory=list)


class ArtworkUpdate(BaseModel):
    artist_id: UUID | None = None
    notes: str | None = None


class UsageRequest(BaseModel):
    character_type: Literal["killer", "survivor"]
    character_id: str
    usage_type: UsageType
