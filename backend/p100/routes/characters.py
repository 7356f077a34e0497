from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from p100.db import get_session
from p100.schemas.artwork import CreditRow
from p100.schemas.character import CharacterSummary, CharacterPublic, CharacterPage, ArtCredit
from p100.schemas.player import PlayerPublic
from p100.services.artworks import attribution_for, credits
from p100.services.characters import list_characters, get_character, neighbours, CharacterNotFound
from p100.services.players import players_for_character

router = APIRouter(tags=["characters"])


def _placed_urls(char) -> list[tuple[str, str]]:
    placed = [(u, "gallery") for u in char.artist_urls or []]
    if char.header_url:
        placed.append((char.header_url, "header"))
    placed += [(u, "legacy_header") for u in char.legacy_header_urls or []]
    return placed


async def _character_page(session: AsyncSession, character_type: str, slug: str) -> CharacterPage:
    try:
        char = await get_character(session, character_type, slug)
    except CharacterNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    players = await players_for_character(session, character_type, slug)
    prev_id, next_id = await neighbours(session, character_type, slug)
    placed = _placed_urls(char)
    artists = await attribution_for(session, [u for u, _ in placed])

    page_credits = []
    for url, usage in placed:
        artist = artists.get(url)
        page_credits.append(ArtCredit(
            url=url,
            usage_type=usage,
            artist_name=artist.name if artist else None,
            artist_url=artist.url if artist else None,
            platform=artist.platform if artist else None,
        ))
    return CharacterPage(
        character=CharacterPublic.model_validate(char),
        players=[PlayerPublic.model_validate(p) for p in players],
        previous_id=prev_id,
        next_id=next_id,
        credits=page_credits,
    )


@router.get("/killers", response_model=list[CharacterSummary])
async def killers(session: AsyncSession = Depends(get_session)):
    return [CharacterSummary.model_validate(c) for c in await list_characters(session, "killer")]


@router.get("/survivors", response_model=list[CharacterSummary])
async def survivors(session: AsyncSession = Depends(get_session)):
    return [CharacterSummary.model_validate(c) for c in await list_characters(session, "survivor")]


@router.get("/killers/{slug}", response_model=CharacterPage)
async def killer_page(slug: str, session: AsyncSession = Depends(get_session)):
    return await _character_page(session, "killer", slug)


@router.get("/survivors/{slug}", response_model=CharacterPage)
async def survivor_page(slug: str, session: AsyncSession = Depends(get_session)):
    return await _character_page(session, "survivor", slug)


@router.get("/credits", response_model=list[CreditRow])
async def artist_credits(session: AsyncSession = Depends(get_session)):
    rows = await credits(session)
    return [
        CreditRow(id=a.id, name=a.name, slug=a.slug, url=a.url, platform=a.platform, artwork_count=n)
        for a, n in rows
    ]
