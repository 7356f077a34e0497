from __future__ import annotations
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from p100.db import get_session
from p100.models.player import Player
from p100.schemas.player import RecentPlayer, UsernameCount, PlayerProfile, ProfileEntry, PlayerPublic
from p100.services.characters import character_names
from p100.services.players import recent_players, search_usernames, highlight_username

router = APIRouter(prefix="/players", tags=["players"])

MIN_SEARCH_LEN = 2


async def _profile(session: AsyncSession, username: str) -> PlayerProfile | None:
    rows = (await session.execute(
        select(Player).where(Player.username == username).order_by(Player.added_at.asc())
    )).scalars().all()
    if not rows:
        return None
    names = await character_names(session)
    profile = PlayerProfile(username=username, total=len(rows))
    for p in rows:
        name, image_url = names.get((p.character_type, p.character_id), (p.character_id, ""))
        entry = ProfileEntry(
            character_type=p.character_type,
            character_id=p.character_id,
            character_name=name,
            image_url=image_url,
            p200=p.p200,
            legacy=p.legacy,
            favorite=p.favorite,
            added_at=p.added_at,
        )
        (profile.killers if p.character_type == "killer" else profile.survivors).append(entry)
    return profile


@router.get("/recent", response_model=list[RecentPlayer])
async def recent(session: AsyncSession = Depends(get_session)):
    players = await recent_players(session, limit=7)
    names = await character_names(session)
    out = []
    for p in players:
        name, image_url = names.get((p.character_type, p.character_id), (None, None))
        out.append(RecentPlayer(
            **PlayerPublic.model_validate(p).model_dump(),
            character_name=name,
            character_image_url=image_url,
        ))
    return out


@router.get("/search", response_model=list[UsernameCount])
async def search(q: str = Query(default=""), session: AsyncSession = Depends(get_session)):
    term = q.strip()
    if len(term) < MIN_SEARCH_LEN:
        return []
    return [UsernameCount(username=u, count=c) for u, c in await search_usernames(session, term, limit=10)]


@router.get("/profile/{username}", response_model=PlayerProfile)
async def profile(username: str, session: AsyncSession = Depends(get_session)):
    result = await _profile(session, username.strip())
    if not result:
        raise HTTPException(status_code=404, detail="Player not found")
    return result


@router.get("/highlight", response_model=PlayerProfile)
async def highlight(session: AsyncSession = Depends(get_session)):
    username = await highlight_username(session, datetime.now(timezone.utc).date())
    if not username:
        raise HTTPException(status_code=404, detail="No players yet")
    return await _profile(session, username)
