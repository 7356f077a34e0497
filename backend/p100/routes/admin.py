from __future__ import annotations
import math
from typing import Literal
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.auth_deps import require_admin
from p100.config import settings
from p100.db import get_session
from p100.schemas.admin import LoginRequest, AdminToken, BlacklistIn, BlacklistPublic
from p100.schemas.player import PlayerPublic, PlayerCreate, PlayerUpdate, PriorityResult
from p100.schemas.submission import (
    SubmissionPage, SubmissionPublic, ReviewRequest, BulkReviewRequest, BulkReviewItem,
    ReviewResult, LegacyToggle, BulkDeleteResult,
)
from p100.security import check_secret, make_admin_token, login_throttle
from p100.services import submissions as subs
from p100.services.blacklist import list_blacklist, add_to_blacklist, remove_from_blacklist, AlreadyBlacklisted
from p100.services.characters import character_names, get_character, CharacterNotFound
from p100.services.players import (
    ensure_player, update_priority, list_players, update_player, delete_player,
    clean_username, InvalidPlayer, PlayerExists,
)
from p100.services.storage import ObjectStorage, StorageError, get_storage
from p100.routes.submissions import to_public

ADMIN_PREFIX = f"/admin-panel-{settings.admin_panel_slug}"

log = structlog.get_logger()

# Login is the only admin route reachable without a token
login_router = APIRouter(prefix=ADMIN_PREFIX, tags=["admin"])
router = APIRouter(prefix=ADMIN_PREFIX, tags=["admin"], dependencies=[Depends(require_admin)])


@login_router.post("/login", response_model=AdminToken)
async def login(payload: LoginRequest, request: Request, key: str | None = Query(default=None)):
    if not check_secret(key, settings.admin_secret_key):
        raise HTTPException(status_code=404, detail="Not Found")
    client = request.client.host if request.client else "unknown"
    wait = login_throttle.retry_after(client)
    if wait:
        raise HTTPException(
            status_code=429,
            detail="Too many failed attempts. Try again later.",
            headers={"Retry-After": str(wait)},
        )
    if not check_secret(payload.password, settings.admin_password):
        login_throttle.fail(client)
        log.warning("admin_login_failed", client=client)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    login_throttle.succeed(client)
    log.info("admin_login", client=client)
    return AdminToken(access=make_admin_token(), expires_in=settings.admin_token_ttl_min * 60)


# --- moderation ---

@router.get("/submissions", response_model=SubmissionPage)
async def admin_submissions(
    type: Literal["all", "killer", "survivor"] = Query(default="all"),
    status: Literal["all", "pending", "approved", "rejected"] = Query(default="all"),
    search: str | None = Query(default=None),
    sort: Literal["newest", "oldest"] = Query(default="newest"),
    page: int = Query(default=1, ge=1),
    session: AsyncSession = Depends(get_session),
):
    size = settings.admin_page_size
    rows, total = await subs.list_submissions(
        session, character_type=type, status=status, search=search, sort=sort, page=page, page_size=size,
    )
    names = await character_names(session)
    return SubmissionPage(
        items=[to_public(s, names) for s in rows],
        total=total,
        page=page,
        page_size=size,
        has_more=page * size < total,
    )


@router.post("/submissions/bulk-review", response_model=list[BulkReviewItem])
async def bulk_review(payload: BulkReviewRequest, session: AsyncSession = Depends(get_session)):
    results = await subs.bulk_review(session, payload.ids, payload.status, payload.rejection_reason)
    return [BulkReviewItem(**r) for r in results]


@router.post("/submissions/screenshots/bulk-delete", response_model=BulkDeleteResult)
async def bulk_delete_screenshots(
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    try:
        n = await subs.bulk_delete_screenshots(session, store)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if not n:
        return BulkDeleteResult(success=False, deleted=0, message="No valid screenshot paths found to delete.")
    return BulkDeleteResult(success=True, deleted=n, message=f"Successfully deleted {n} screenshots.")


@router.post("/submissions/{submission_id}/review", response_model=ReviewResult)
async def review(submission_id: UUID, payload: ReviewRequest, session: AsyncSession = Depends(get_session)):
    try:
        sub, created = await subs.review_submission(session, submission_id, payload.status, payload.rejection_reason)
    except subs.SubmissionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except subs.SubmissionAlreadyReviewed as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ReviewResult(submission=to_public(sub, await character_names(session)), player_created=created)


@router.post("/submissions/{submission_id}/legacy", response_model=SubmissionPublic)
async def toggle_legacy(submission_id: UUID, payload: LegacyToggle, session: AsyncSession = Depends(get_session)):
    try:
        sub = await subs.set_legacy(session, submission_id, payload.legacy)
    except subs.SubmissionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_public(sub, await character_names(session))


@router.delete("/submissions/{submission_id}/screenshot", response_model=SubmissionPublic)
async def delete_screenshot(
    submission_id: UUID,
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    try:
        sub = await subs.delete_screenshot(session, store, submission_id)
    except subs.SubmissionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except subs.InvalidSubmission as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return to_public(sub, await character_names(session))


# --- players ---

@router.get("/players", response_model=list[PlayerPublic])
async def admin_players(
    search: str | None = Query(default=None),
    character_id: str | None = Query(default=None),
    sort: Literal["added_at_desc", "added_at_asc", "username_asc", "username_desc"] = Query(default="added_at_desc"),
    session: AsyncSession = Depends(get_session),
):
    rows = await list_players(session, search=search, character_id=character_id, sort=sort)
    return [PlayerPublic.model_validate(p) for p in rows]


@router.post("/players", status_code=201, response_model=PlayerPublic)
async def create_player(payload: PlayerCreate, session: AsyncSession = Depends(get_session)):
    try:
        username = clean_username(payload.username)
    except InvalidPlayer as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        await get_character(session, payload.character_type, payload.character_id)
    except CharacterNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    player, created = await ensure_player(session, username, payload.character_type, payload.character_id)
    if not created:
        raise HTTPException(status_code=409, detail="Player already listed for this character")
    player.p200, player.legacy, player.favorite, player.priority = (
        payload.p200, payload.legacy, payload.favorite, payload.priority,
    )
    await session.commit()
    await session.refresh(player)
    return PlayerPublic.model_validate(player)


@router.put("/players/{player_id}", response_model=PlayerPublic)
async def edit_player(player_id: UUID, payload: PlayerUpdate, session: AsyncSession = Depends(get_session)):
    try:
        player = await update_player(session, player_id, payload.model_dump(exclude_unset=True))
    except InvalidPlayer as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PlayerExists as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return PlayerPublic.model_validate(player)


@router.delete("/players/{player_id}", status_code=204)
async def remove_player(player_id: UUID, session: AsyncSession = Depends(get_session)):
    if not await delete_player(session, player_id):
        raise HTTPException(status_code=404, detail="Player not found")


def _priority_reply(status_code: int, success: bool, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=PriorityResult(success=success, message=message).model_dump())


@router.post("/update-priority", response_model=PriorityResult)
async def set_priority(request: Request, session: AsyncSession = Depends(get_session)):
    """
    JSON body {id, priority}. Payload errors answer in the same {success, message} shape
    instead of the usual validation error.
    """
    try:
        body = await request.json()
    except ValueError:
        return _priority_reply(400, False, "Invalid payload.")
    player_id = body.get("id") if isinstance(body, dict) else None
    priority = body.get("priority") if isinstance(body, dict) else None
    if (
        not isinstance(player_id, str)
        or isinstance(priority, bool)
        or not isinstance(priority, (int, float))
        or not math.isfinite(priority)
    ):
        return _priority_reply(400, False, "Invalid payload.")
    try:
        pid = UUID(player_id)
    except ValueError:
        return _priority_reply(404, False, "Player not found.")

    player = await update_priority(session, pid, priority)
    if not player:
        return _priority_reply(404, False, "Player not found.")
    log.info("priority_updated", player_id=player_id, priority=player.priority)
    return PriorityResult(success=True, message="Priority updated.")


# --- blacklist ---

@router.get("/blacklist", response_model=list[BlacklistPublic])
async def blacklist(session: AsyncSession = Depends(get_session)):
    return [BlacklistPublic.model_validate(b) for b in await list_blacklist(session)]


@router.post("/blacklist", status_code=201, response_model=BlacklistPublic)
async def blacklist_add(payload: BlacklistIn, session: AsyncSession = Depends(get_session), admin: str = Depends(require_admin)):
    try:
        entry = await add_to_blacklist(session, payload.username, payload.reason, created_by=admin)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AlreadyBlacklisted as e:
        raise HTTPException(status_code=409, detail=str(e))
    return BlacklistPublic.model_validate(entry)


@router.delete("/blacklist/{entry_id}", status_code=204)
async def blacklist_remove(entry_id: UUID, session: AsyncSession = Depends(get_session)):
    if not await remove_from_blacklist(session, entry_id):
        raise HTTPException(status_code=404, detail="Blacklist entry not found")
