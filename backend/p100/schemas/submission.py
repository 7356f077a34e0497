from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal
from uuid import UUID
from datetime import datetime

ReviewStatus = Literal["approved", "rejected"]


class SubmissionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    character_type: Literal["killer", "survivor"]
    character_id: str
    character_name: str | None = None
    screenshot_url: str
    status: str
    rejection_reason: str | None = None
    comment: str | None = None
    legacy: bool
    submitted_at: datetime
    reviewed_at: datetime | None = None


class SubmissionPage(BaseModel):
    items: list[SubmissionPublic]
    total: int
    page: int
    page_size: int
    has_more: bool


class ReviewRequest(BaseModel):
    status: ReviewStatus
    rejection_reason: str | None = Field(default=None, max_length=500)


class BulkReviewRequest(ReviewRequest):
    ids: list[UUID] = Field(min_length=1)


class BulkReviewItem(BaseModel):
    id: UUID
    success: bool
    message: str
    player_created: bool = False


class ReviewResult(BaseModel):
    submission: SubmissionPublic
    player_created: bool


class LegacyToggle(BaseModel):
    legacy: bool


class BulkDeleteResult(BaseModel):
    success: bool
    deleted: int
    message: str
