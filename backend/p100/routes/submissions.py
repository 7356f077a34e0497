from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.db import get_session
from p100.models.submission import Submission
from p100.schemas.player import UsernameCount
from p100.schemas.submission import SubmissionPublic
from p100.services.characters import character_names
from p100.services.players import search_usernames
from p100.services.storage import ObjectStorage, StorageError, get_storage
from p100.services.submissions import (
    submit_p100, submissions_for_username,
    InvalidSubmission, BlacklistedUsername, DuplicateSubmission,
)

router = APIRouter(prefix="/submissions", tags=["submissions"])
log = structlog.get_logger()


def to_public(s: Submission, names: dict) -> SubmissionPublic:
    name, _ = names.get((s.character_type, s.character_id), (None, None))
    return SubmissionPublic(
        id=s.id,
        username=s.username,
        character_type=s.character_type,
        character_id=s.character_id,
        character_name=name,
        screenshot_url=s.screenshot_url,
        status=s.status,
        rejection_reason=s.rejection_reason,
        comment=s.comment,
        legacy=s.legacy,
        submitted_at=s.submitted_at,
        reviewed_at=s.reviewed_at,
    )


@router.post("", status_code=201, response_model=SubmissionPublic)
async def create_submission(
    username: str = Form(...),
    character_type: str = Form(...),
    character_id: str = Form(...),
    comment: str | None = Form(default=None),
    screenshot: UploadFile | None = File(default=None, description="JPEG, PNG or WebP, 10MB max"),
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    data = await screenshot.read() if screenshot else b""
    try:
        sub = await submit_p100(
            session,
            store,
            username=username,
            character_type=character_type,
            character_id=character_id,
            screenshot=data,
            comment=comment,
        )
    except InvalidSubmission as e:
        raise HTTPException(status_code=422, detail=str(e))
    except BlacklistedUsername as e:
        raise HTTPException(status_code=403, detail=str(e))
    except DuplicateSubmission as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        log.error("screenshot_upload_failed", error=str(e))
        raise HTTPException(status_code=502, detail="Failed to upload screenshot")
    return to_public(sub, await character_names(session))


@router.get("/status", response_model=list[SubmissionPublic])
async def submission_status(username: str = Query(..., min_length=1), session: AsyncSession = Depends(get_session)):
    rows = await submissions_for_username(session, username)
    names = await character_names(session)
    return [to_public(s, names) for s in rows]


@router.get("/suggestions", response_model=list[UsernameCount])
async def suggestions(q: str = Query(default=""), session: AsyncSession = Depends(get_session)):
    term = q.strip()
    if len(term) < 2:
        return []
    return [UsernameCount(username=u, count=c) for u, c in await search_usernames(session, term)]
