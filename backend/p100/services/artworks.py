from __future__ import annotations
from uuid import UUID
from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.models.artist import Artist, Artwork
from p100.models.character import CHARACTER_MODELS
from p100.services.characters import get_character, place_url, unplace_url, PLACEMENTS, display_ordering
from p100.services.validation import sanitize_input, slugify

log = structlog.get_logger()

PLATFORMS = ("twitter", "instagram", "youtube")


class ArtworkNotFound(Exception):
    pass

class ArtistNotFound(Exception):
    pass

class InvalidArtwork(Exception):
    pass

class DuplicateUsage(Exception):
    pass


# --- artists ---

def _check_artist_fields(name: str, url: str, platform: str) -> None:
    if not name or not url:
        raise InvalidArtwork("Artist name and URL are required.")
    if platform not in PLATFORMS:
        raise InvalidArtwork(f"Platform must be one of: {', '.join(PLATFORMS)}")


async def list_artists(session: AsyncSession) -> list[Artist]:
    return list((await session.execute(select(Artist).order_by(Artist.name))).scalars().all())


async def create_artist(session: AsyncSession, name: str, url: str, platform: str) -> Artist:
    name = sanitize_input(name)
    url = (url or "").strip()
    _check_artist_fields(name, url, platform)
    artist = Artist(name=name, slug=slugify(name), url=url, platform=platform)
    session.add(artist)
    await session.commit()
    await session.refresh(artist)
    log.info("artist_created", artist_id=str(artist.id), slug=artist.slug)
    return artist


async def update_artist(session: AsyncSession, artist_id: UUID, name: str, url: str, platform: str) -> Artist:
    artist = await session.get(Artist, artist_id)
    if not artist:
        raise ArtistNotFound("Artist not found")
    name = sanitize_input(name)
    url = (url or "").strip()
    _check_artist_fields(name, url, platform)
    artist.name, artist.slug, artist.url, artist.platform = name, slugify(name), url, platform
    await session.commit()
    await session.refresh(artist)
    return artist


async def delete_artist(session: AsyncSession, artist_id: UUID) -> None:
    artist = await session.get(Artist, artist_id)
    if not artist:
        raise ArtistNotFound("Artist not found")
    # Attributions survive without an artist
    await session.execute(update(Artwork).where(Artwork.artist_id == artist_id).values(artist_id=None))
    await session.execute(delete(Artist).where(Artist.id == artist_id))
    await session.commit()
    log.info("artist_deleted", artist_id=str(artist_id))


async def credits(session: AsyncSession) -> list[tuple[Artist, int]]:
    q = (
        select(Artist, func.count(Artwork.id))
        .outerjoin(Artwork, Artwork.artist_id == Artist.id)
        .group_by(Artist.id)
        .order_by(Artist.name)
    )
    return [(a, int(n)) for a, n in (await session.execute(q)).all()]


# --- attribution ---

async def attribution_for(session: AsyncSession, urls: list[str]) -> dict[str, Artist]:
    """Artist for each url that has one."""
    urls = [u for u in urls if u]
    if not urls:
        return {}
    q = (
        select(Artwork.artwork_url, Artist)
        .join(Artist, Artwork.artist_id == Artist.id)
        .where(Artwork.artwork_url.in_(urls))
    )
    return {url: artist for url, artist in (await session.execute(q)).all()}


async def usages_by_url(session: AsyncSession) -> dict[str, list[dict]]:
    """
    Placements of every URL across killers and survivors.
    Derived from the character columns; there is no separate usage table.
    """
    out: dict[str, list[dict]] = {}

    def add(url, char, character_type, usage_type, order=None):
        if not url:
            return
        out.setdefault(url, []).append({
            "character_id": char.id,
            "character_type": character_type,
            "character_name": char.name,
            "usage_type": usage_type,
            "display_order": order,
        })

    for character_type, model in CHARACTER_MODELS.items():
        chars = (await session.execute(select(model).order_by(*display_ordering(model)))).scalars().all()
        for char in chars:
            for i, url in enumerate(char.artist_urls or []):
                add(url, char, character_type, "gallery", i)
            add(char.header_url, char, character_type, "header")
            for i, url in enumerate(char.legacy_header_urls or []):
                add(url, char, character_type, "legacy_header", i)
            add(char.background_image_url, char, character_type, "background")
    return out


async def list_artworks(session: AsyncSession) -> list[tuple[Artwork, Artist | None, list[dict]]]:
    rows = (await session.execute(
        select(Artwork, Artist)
        .outerjoin(Artist, Artwork.artist_id == Artist.id)
        .order_by(Artwork.created_at.desc(), Artwork.artwork_url)
    )).all()
    usages = await usages_by_url(session)
    return [(artwork, artist, usages.get(artwork.artwork_url, [])) for artwork, artist in rows]


async def get_artwork(session: AsyncSession, artwork_id: UUID) -> Artwork:
    artwork = await session.get(Artwork, artwork_id)
    if not artwork:
        raise ArtworkNotFound("Artwork not found")
    return artwork


async def update_artwork(session: AsyncSession, artwork_id: UUID, artist_id: UUID | None, notes: str | None) -> Artwork:
    artwork = await get_artwork(session, artwork_id)
    if artist_id is not None and not await session.get(Artist, artist_id):
        raise ArtistNotFound("Artist not found")
    artwork.artist_id = artist_id
    artwork.notes = sanitize_input(notes) or None
    await session.commit()
    await session.refresh(artwork)
    return artwork


async def delete_artwork(session: AsyncSession, artwork_id: UUID) -> int:
    """
    Drop the attribution and every placement of its URL. The stored file stays.
    Returns how many placements were removed.
    """
    artwork = await get_artwork(session, artwork_id)
    url = artwork.artwork_url
    removed = 0
    for model in CHARACTER_MODELS.values():
        for char in (await session.execute(select(model))).scalars().all():
            for placement in PLACEMENTS:
                if unplace_url(char, placement, url):
                    removed += 1
    await session.delete(artwork)
    await session.commit()
    log.info("artwork_deleted", artwork_id=str(artwork_id), url=url, placements_removed=removed)
    return removed


async def add_usage(session: AsyncSession, artwork_id: UUID, character_type: str, character_id: str, usage_type: str) -> None:
    if usage_type not in PLACEMENTS:
        raise InvalidArtwork(f"Unknown usage type: {usage_type}")
    artwork = await get_artwork(session, artwork_id)
    char = await get_character(session, character_type, character_id)
    if not place_url(char, usage_type, artwork.artwork_url):
        raise DuplicateUsage("This artwork is already assigned to this character with this usage type")
    await session.commit()
    log.info("artwork_usage_added", artwork_id=str(artwork_id), character_id=character_id, usage_type=usage_type)


async def remove_usage(session: AsyncSession, artwork_id: UUID, character_type: str, character_id: str, usage_type: str) -> None:
    if usage_type not in PLACEMENTS:
        raise InvalidArtwork(f"Unknown usage type: {usage_type}")
    artwork = await get_artwork(session, artwork_id)
    char = await get_character(session, character_type, character_id)
    if not unplace_url(char, usage_type, artwork.artwork_url):
        raise ArtworkNotFound("Usage not found")
    await session.commit()
    log.info("artwork_usage_removed", artwork_id=str(artwork_id), character_id=character_id, usage_type=usage_type)
