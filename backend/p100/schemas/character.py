from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from p100.schemas.player import PlayerPublic


class CharacterSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    image_url: str
    display_order: int | None = None


class CharacterPublic(CharacterSummary):
    background_image_url: str | None = None
    header_url: str | None = None
    artist_urls: list[str] = Field(default_factory=list)
    legacy_header_urls: list[str] = Field(default_factory=list)
    background_credit_name: str | None = None
    background_credit_url: str | None = None
    created_at: datetime
    updated_at: datetime


class ArtCredit(BaseModel):
    url: str
    usage_type: str
    artist_name: str | None = None
    artist_url: str | None = None
    platform: str | None = None


class CharacterPage(BaseModel):
    character: CharacterPublic
    players: list[PlayerPublic]
    previous_id: str | None = None
    next_id: str | None = None
    credits: list[ArtCredit] = Field(default_factory=list)


class CharacterUpdate(BaseModel):
    # URLs are picked from the storage browser
    name: str | None = None
    image_url: str | None = None
    background_image_url: str | None = None
    header_url: str | None = None
    artist_urls: list[str] | None = None
    legacy_header_urls: list[str] | None = None
    background_credit_name: str | None = None
    background_credit_url: str | None = None
    display_order: int | None = None
