from __future__ import annotations
import hashlib
import math
from datetime import date
from uuid import UUID
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.models.player import Player
from p100.models.character import CHARACTER_FK_COLUMN
from p100.services.validation import sanitize_input, is_valid_username

log = structlog.get_logger()

# Largest value the INTEGER column holds
PRIORITY_MAX = 2**31 - 1


class InvalidPlayer(Exception):
    pass


class PlayerExists(Exception):
    pass


def clean_username(username: str) -> str:
    username = sanitize_input(username)
    if not is_valid_username(username):
        raise InvalidPlayer("Username must be 1-50 characters")
    return username


def clamp_priority(priority: float | int) -> int:
    """Integer in [0, PRIORITY_MAX]: floor, then clamp. Raises ValueError for NaN/inf."""
    if isinstance(priority, bool) or not isinstance(priority, (int, float)):
        raise ValueError("Priority must be a number")
    if not math.isfinite(priority):
        raise ValueError("Priority must be a number")
    return min(max(0, math.floor(priority)), PRIORITY_MAX)


async def find_player(session: AsyncSession, username: str, character_type: str, character_id: str) -> Player | None:
    fk = getattr(Player, CHARACTER_FK_COLUMN[character_type])
    return await session.scalar(
        select(Player).where(Player.username == username, fk == character_id).limit(1)
    )


async def ensure_player(session: AsyncSession, username: str, character_type: str, character_id: str) -> tuple[Player, bool]:
    """
    Idempotent by exact (username, character). Returns (player, created).
    The caller commits.
    """
    existing = await find_player(session, username, character_type, character_id)
    if existing:
        return existing, False
    player = Player(
        username=username,
        p200=False,
        legacy=False,  # legacy is managed by hand in the admin
        favorite=False,
        priority=0,
        **{CHARACTER_FK_COLUMN[character_type]: character_id},
    )
    session.add(player)
    await session.flush()
    log.info("player_created", player_id=str(player.id), username=username, character=character_id)
    return player, True


async def update_priority(session: AsyncSession, player_id: UUID, priority: float | int) -> Player | None:
    player = await session.get(Player, player_id)
    if not player:
        return None
    player.priority = clamp_priority(priority)
    await session.commit()
    return player


async def players_for_character(session: AsyncSession, character_type: str, character_id: str) -> list[Player]:
    fk = getattr(Player, CHARACTER_FK_COLUMN[character_type])
    q = select(Player).where(fk == character_id).order_by(Player.priority.desc(), Player.added_at.asc())
    return list((await session.execute(q)).scalars().all())


async def recent_players(session: AsyncSession, limit: int = 7) -> list[Player]:
    q = select(Player).order_by(Player.added_at.desc()).limit(limit)
    return list((await session.execute(q)).scalars().all())


async def search_usernames(session: AsyncSession, term: str, limit: int = 10) -> list[tuple[str, int]]:
    """Distinct usernames containing term, with how many P100s each has."""
    q = (
        select(Player.username, func.count(Player.id))
        .where(Player.username.ilike(f"%{term}%"))
        .group_by(Player.username)
        .order_by(Player.username)
        .limit(limit)
    )
    return [(u, int(c)) for u, c in (await session.execute(q)).all()]


async def highlight_username(session: AsyncSession, day: date) -> str | None:
    """Stable pick for a given day: same answer all day, different across days."""
    usernames = list((await session.execute(
        select(Player.username).distinct().order_by(Player.username)
    )).scalars().all())
    if not usernames:
        return None
    digest = hashlib.sha256(day.isoformat().encode()).hexdigest()
    return usernames[int(digest, 16) % len(usernames)]


PLAYER_SORTS = {
    "added_at_desc": (Player.added_at.desc(),),
    "added_at_asc": (Player.added_at.asc(),),
    "username_asc": (Player.username.asc(),),
    "username_desc": (Player.username.desc(),),
}


async def list_players(
    session: AsyncSession,
    *,
    search: str | None = None,
    character_id: str | None = None,
    sort: str = "added_at_desc",
) -> list[Player]:
    q = select(Player)
    if search and search.strip():
        q = q.where(Player.username.ilike(f"%{search.strip()}%"))
    if character_id:
        q = q.where((Player.killer_id == character_id) | (Player.survivor_id == character_id))
    q = q.order_by(*PLAYER_SORTS.get(sort, PLAYER_SORTS["added_at_desc"]), Player.id)
    return list((await session.execute(q)).scalars().all())


async def update_player(session: AsyncSession, player_id: UUID, fields: dict) -> Player | None:
    player = await session.get(Player, player_id)
    if not player:
        return None
    for key in ("username", "p200", "legacy", "favorite", "priority"):
        if fields.get(key) is None:
            continue
        value = fields[key]
        if key == "username":
            value = clean_username(value)
            other = await find_player(session, value, player.character_type, player.character_id)
            if other and other.id != player.id:
                raise PlayerExists("Player already listed for this character")
        elif key == "priority":
            value = clamp_priority(value)
        setattr(player, key, value)
    await session.commit()
    return player


async def delete_player(session: AsyncSession, player_id: UUID) -> bool:
    player = await session.get(Player, player_id)
    if not player:
        return False
    await session.delete(player)
    await session.commit()
    log.info("player_deleted", player_id=str(player_id), username=player.username)
    return True
