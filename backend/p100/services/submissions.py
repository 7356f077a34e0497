from __future__ import annotations
import secrets
import time
from datetime import datetime, timezone as dt_tz
from uuid import UUID
from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.config import settings
from p100.models.blacklist import BlacklistedUser
from p100.models.character import CHARACTER_MODELS, CHARACTER_FK_COLUMN
from p100.models.submission import Submission
from p100.services.media import validate_image, ext_for_mime
from p100.services.players import ensure_player
from p100.services.storage import ObjectStorage, SCREENSHOTS_BUCKET, parse_public_url
from p100.services.validation import sanitize_input, is_valid_username, is_valid_character_id

log = structlog.get_logger()

DUPLICATE_MESSAGE = "You already have a pending or approved submission for this character."
DUPLICATE_REASON = "Duplicate submission"
ACTIVE_STATUSES = ("pending", "approved")


class InvalidSubmission(Exception):
    pass

class BlacklistedUsername(Exception):
    pass

class DuplicateSubmission(Exception):
    pass

class SubmissionNotFound(Exception):
    pass

class SubmissionAlreadyReviewed(Exception):
    pass


def _now() -> datetime:
    return datetime.now(dt_tz.utc)


async def character_exists(session: AsyncSession, character_type: str, character_id: str) -> bool:
    model = CHARACTER_MODELS[character_type]
    return await session.get(model, character_id) is not None


async def is_blacklisted(session: AsyncSession, username: str) -> bool:
    hit = await session.scalar(
        select(BlacklistedUser.id).where(func.lower(BlacklistedUser.username) == username.lower()).limit(1)
    )
    return hit is not None


async def find_active_submission(session: AsyncSession, username: str, character_type: str, character_id: str) -> Submission | None:
    fk = getattr(Submission, CHARACTER_FK_COLUMN[character_type])
    return await session.scalar(
        select(Submission)
        .where(
            Submission.username == username,
            fk == character_id,
            Submission.status.in_(ACTIVE_STATUSES),
            Submission.legacy.is_(False),
        )
        .limit(1)
    )


async def submit_p100(
    session: AsyncSession,
    store: ObjectStorage,
    *,
    username: str,
    character_type: str,
    character_id: str,
    screenshot: bytes,
    comment: str | None = None,
) -> Submission:
    """
    Public intake. Validates, applies the duplicate guard, uploads the screenshot, inserts a pending row.

    The duplicate guard is a point query, not a constraint: two concurrent submitters can both pass it.
    """
    clean_username = sanitize_input(username)
    if not is_valid_username(clean_username):
        raise InvalidSubmission("Username must be 1-50 characters")
    if character_type not in CHARACTER_MODELS or not is_valid_character_id(character_id or ""):
        raise InvalidSubmission("Invalid character selection")
    if not await character_exists(session, character_type, character_id):
        raise InvalidSubmission("Invalid character selection")
    try:
        mime = validate_image(screenshot, settings.max_screenshot_bytes)
    except ValueError as e:
        raise InvalidSubmission(str(e))

    if await is_blacklisted(session, clean_username):
        log.info("submission_blacklisted", username=clean_username)
        raise BlacklistedUsername("This username is not allowed to submit.")

    fk_col = CHARACTER_FK_COLUMN[character_type]
    existing = await find_active_submission(session, clean_username, character_type, character_id)
    if existing:
        # Keep an audit trail of the attempt
        session.add(Submission(
            username=clean_username,
            screenshot_url="",
            status="rejected",
            rejection_reason=DUPLICATE_REASON,
            comment=sanitize_input(comment) or None,
            reviewed_at=_now(),
            reviewed_by="system",
            **{fk_col: character_id},
        ))
        await session.commit()
        log.info("submission_duplicate", username=clean_username, character=character_id, existing_id=str(existing.id))
        raise DuplicateSubmission(DUPLICATE_MESSAGE)

    file_name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext_for_mime(mime)}"
    screenshot_url = store.put_bytes(SCREENSHOTS_BUCKET, file_name, screenshot, mime)

    sub = Submission(
        username=clean_username,
        screenshot_url=screenshot_url,
        status="pending",
        comment=sanitize_input(comment) or None,
        **{fk_col: character_id},
    )
    session.add(sub)
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        # Uploaded file is left behind
        log.exception("submission_insert_failed", username=clean_username, screenshot_url=screenshot_url)
        raise
    await session.refresh(sub)
    log.info("submission_created", submission_id=str(sub.id), username=clean_username, character=character_id)
    return sub


async def review_submission(
    session: AsyncSession,
    submission_id: UUID,
    status: str,
    rejection_reason: str | None = None,
    reviewed_by: str = "admin",
) -> tuple[Submission, bool]:
    """
    pending -> approved | rejected. Returns (submission, player_created).
    Approval creates the player only if (username, character) is not already listed.
    """
    if status not in ("approved", "rejected"):
        raise InvalidSubmission("status must be approved or rejected")
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise SubmissionNotFound("Submission not found")
    if sub.status != "pending":
        raise SubmissionAlreadyReviewed(f"Submission already {sub.status}")

    sub.status = status
    sub.rejection_reason = sanitize_input(rejection_reason) or None if status == "rejected" else None
    sub.reviewed_at = _now()
    sub.reviewed_by = reviewed_by

    created = False
    if status == "approved":
        _, created = await ensure_player(session, sub.username, sub.character_type, sub.character_id)
    await session.commit()
    log.info("submission_reviewed", submission_id=str(sub.id), status=status, player_created=created)
    return sub, created


async def bulk_review(session: AsyncSession, ids: list[UUID], status: str, rejection_reason: str | None = None) -> list[dict]:
    out = []
    for sid in ids:
        try:
            _, created = await review_submission(session, sid, status, rejection_reason)
            out.append({"id": sid, "success": True, "message": f"Submission {status}.", "player_created": created})
        except (SubmissionNotFound, SubmissionAlreadyReviewed, InvalidSubmission) as e:
            out.append({"id": sid, "success": False, "message": str(e), "player_created": False})
        except SQLAlchemyError:
            await session.rollback()
            log.exception("bulk_review_item_failed", submission_id=str(sid))
            out.append({"id": sid, "success": False, "message": "Failed to update submission.", "player_created": False})
    return out


async def list_submissions(
    session: AsyncSession,
    *,
    character_type: str = "all",
    status: str = "all",
    search: str | None = None,
    sort: str = "newest",
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Submission], int]:
    filters = []
    if character_type == "killer":
        filters.append(Submission.killer_id.is_not(None))
    elif character_type == "survivor":
        filters.append(Submission.survivor_id.is_not(None))
    if status != "all":
        filters.append(Submission.status == status)
    if search and search.strip():
        filters.append(Submission.username.ilike(f"%{search.strip()}%"))

    total = await session.scalar(select(func.count()).select_from(Submission).where(*filters)) or 0
    order = Submission.submitted_at.asc() if sort == "oldest" else Submission.submitted_at.desc()
    q = (
        select(Submission)
        .where(*filters)
        .order_by(order, Submission.id)
        .offset((max(page, 1) - 1) * page_size)
        .limit(page_size)
    )
    rows = list((await session.execute(q)).scalars().all())
    return rows, int(total)


async def set_legacy(session: AsyncSession, submission_id: UUID, legacy: bool) -> Submission:
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise SubmissionNotFound("Submission not found")
    sub.legacy = legacy
    await session.commit()
    return sub


async def delete_screenshot(session: AsyncSession, store: ObjectStorage, submission_id: UUID) -> Submission:
    sub = await session.get(Submission, submission_id)
    if not sub:
        raise SubmissionNotFound("Submission not found")
    if not sub.screenshot_url:
        raise InvalidSubmission("Submission has no screenshot")
    parsed = parse_public_url(sub.screenshot_url)
    if not parsed:
        raise InvalidSubmission("Could not parse screenshot URL.")
    bucket, path = parsed
    store.remove(bucket, [path])
    sub.screenshot_url = ""
    await session.commit()
    log.info("screenshot_deleted", submission_id=str(sub.id), bucket=bucket, path=path)
    return sub


async def bulk_delete_screenshots(session: AsyncSession, store: ObjectStorage) -> int:
    """Remove screenshots of every reviewed submission. Returns how many were deleted."""
    rows = (await session.execute(
        select(Submission.id, Submission.screenshot_url)
        .where(Submission.status.in_(("approved", "rejected")), Submission.screenshot_url != "")
    )).all()

    paths: list[str] = []
    ids: list[UUID] = []
    for sid, url in rows:
        parsed = parse_public_url(url)
        if parsed and parsed[0] == SCREENSHOTS_BUCKET:
            paths.append(parsed[1])
            ids.append(sid)
    if not paths:
        return 0

    store.remove(SCREENSHOTS_BUCKET, paths)
    await session.execute(update(Submission).where(Submission.id.in_(ids)).values(screenshot_url=""))
    await session.commit()
    log.info("screenshots_bulk_deleted", count=len(paths))
    return len(paths)


async def submissions_for_username(session: AsyncSession, username: str) -> list[Submission]:
    q = select(Submission).where(Submission.username == username.strip()).order_by(Submission.submitted_at.desc())
    return list((await session.execute(q)).scalars().all())
