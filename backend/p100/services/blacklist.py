from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.models.blacklist import BlacklistedUser
from p100.services.validation import sanitize_input, is_valid_username

log = structlog.get_logger()


class AlreadyBlacklisted(Exception):
    pass


async def list_blacklist(session: AsyncSession) -> list[BlacklistedUser]:
    q = select(BlacklistedUser).order_by(BlacklistedUser.created_at.desc(), BlacklistedUser.username)
    return list((await session.execute(q)).scalars().all())


async def add_to_blacklist(session: AsyncSession, username: str, reason: str | None, created_by: str = "admin") -> BlacklistedUser:
    username = sanitize_input(username)
    if not is_valid_username(username):
        raise ValueError("Username must be 1-50 characters")
    exists = await session.scalar(
        select(BlacklistedUser.id).where(func.lower(BlacklistedUser.username) == username.lower())
    )
    if exists:
        raise AlreadyBlacklisted(f"{username} is already blacklisted")
    entry = BlacklistedUser(username=username, reason=sanitize_input(reason) or None, created_by=created_by)
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    log.info("username_blacklisted", username=username)
    return entry


async def remove_from_blacklist(session: AsyncSession, entry_id: UUID) -> bool:
    entry = await session.get(BlacklistedUser, entry_id)
    if not entry:
        return False
    await session.delete(entry)
    await session.commit()
    log.info("username_unblacklisted", username=entry.username)
    return True
