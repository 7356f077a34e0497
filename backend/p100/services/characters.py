from __future__ import annotations
import time
from dataclasses import dataclass
from uuid import UUID
from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from p100.models.artist import Artist, Artwork
from p100.models.character import CHARACTER_MODELS, CHARACTER_FK_COLUMN
from p100.models.player import Player
from p100.models.submission import Submission
from p100.services.media import content_type_for_name
from p100.services.storage import (
    ObjectStorage, ARTWORKS_BUCKET, PORTRAIT_BUCKET, BACKGROUND_BUCKET, HEADER_BUCKET,
)
from p100.services.validation import is_valid_character_id, sanitize_input, slugify

log = structlog.get_logger()

PLACEMENTS = ("gallery", "header", "legacy_header", "background")
EDITABLE_FIELDS = (
    "name", "image_url", "background_image_url", "header_url", "artist_urls",
    "legacy_header_urls", "background_credit_name", "background_credit_url", "display_order",
)


class CharacterNotFound(Exception):
    pass

class CharacterExists(Exception):
    pass

class InvalidCharacter(Exception):
    pass


@dataclass
class Upload:
    filename: str
    data: bytes

    @property
    def ext(self) -> str:
        return self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else "bin"


def character_model(character_type: str):
    try:
        return CHARACTER_MODELS[character_type]
    except KeyError:
        raise InvalidCharacter(f"Unknown character type: {character_type}")


def display_ordering(model):
    return (model.display_order.is_(None), model.display_order, model.name)


async def list_characters(session: AsyncSession, character_type: str) -> list:
    model = character_model(character_type)
    return list((await session.execute(select(model).order_by(*display_ordering(model)))).scalars().all())


async def get_character(session: AsyncSession, character_type: str, character_id: str):
    model = character_model(character_type)
    char = await session.get(model, character_id)
    if not char:
        raise CharacterNotFound(f"{character_type.capitalize()} not found")
    return char


async def neighbours(session: AsyncSession, character_type: str, character_id: str) -> tuple[str | None, str | None]:
    """(previous, next) ids in display order; the ends wrap around."""
    model = character_model(character_type)
    ids = list((await session.execute(select(model.id).order_by(*display_ordering(model)))).scalars().all())
    if character_id not in ids:
        return None, None
    i = ids.index(character_id)
    return ids[i - 1], ids[(i + 1) % len(ids)]


def _put(store: ObjectStorage, bucket: str, path: str, upload: Upload) -> str:
    return store.put_bytes(bucket, path, upload.data, content_type_for_name(upload.filename))


async def create_character(
    session: AsyncSession,
    store: ObjectStorage,
    character_type: str,
    *,
    character_id: str,
    name: str,
    image: Upload,
    background: Upload | None = None,
    header: Upload | None = None,
    gallery: list[Upload] | None = None,
):
    """
    Upload the character's images to their conventional buckets and insert the row at the end of the order.
    Uploads are upserts, so retrying a failed create overwrites the same objects.
    """
    model = character_model(character_type)
    name = sanitize_input(name)
    if not name or not is_valid_character_id(character_id or ""):
        raise InvalidCharacter("Name, ID, and character image are required.")
    if not image or not image.data:
        raise InvalidCharacter("Name, ID, and character image are required.")
    if await session.get(model, character_id):
        raise CharacterExists(f"{character_type.capitalize()} '{character_id}' already exists")

    ts = int(time.time() * 1000)
    image_url = _put(store, PORTRAIT_BUCKET[character_type], f"{character_id}.{image.ext}", image)
    background_url = None
    if background and background.data:
        background_url = _put(store, BACKGROUND_BUCKET[character_type], f"{character_id}.{background.ext}", background)
    header_url = None
    if header and header.data:
        header_url = _put(store, HEADER_BUCKET, f"{character_id}-header.{header.ext}", header)
    gallery_urls = [
        _put(store, ARTWORKS_BUCKET, f"{character_id}-artwork-{i}-{ts}.{f.ext}", f)
        for i, f in enumerate([g for g in (gallery or []) if g.data], start=1)
    ]

    max_order = await session.scalar(select(func.max(model.display_order))) or 0
    char = model(
        id=character_id,
        name=name,
        image_url=image_url,
        background_image_url=background_url,
        header_url=header_url,
        artist_urls=gallery_urls,
        legacy_header_urls=[],
        display_order=max_order + 1,
    )
    session.add(char)
    await session.commit()
    await session.refresh(char)
    log.info("character_created", character_type=character_type, character_id=character_id)
    return char


async def update_character(session: AsyncSession, character_type: str, character_id: str, fields: dict):
    char = await get_character(session, character_type, character_id)
    for key, value in fields.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key in ("artist_urls", "legacy_header_urls"):
            value = list(value or [])
        elif key == "name":
            value = sanitize_input(value)
            if not value:
                raise InvalidCharacter("Name cannot be empty")
        elif key == "image_url" and value is None:
            raise InvalidCharacter("Character image cannot be removed")
        setattr(char, key, value)
    await session.commit()
    await session.refresh(char)
    log.info("character_updated", character_type=character_type, character_id=character_id, fields=sorted(fields))
    return char


async def delete_character(session: AsyncSession, character_type: str, character_id: str) -> None:
    """Players, then submissions, then the character row."""
    model = character_model(character_type)
    char = await get_character(session, character_type, character_id)
    fk = CHARACTER_FK_COLUMN[character_type]
    await session.execute(delete(Player).where(getattr(Player, fk) == character_id))
    await session.execute(delete(Submission).where(getattr(Submission, fk) == character_id))
    await session.execute(delete(model).where(model.id == char.id))
    await session.commit()
    log.info("character_deleted", character_type=character_type, character_id=character_id)


def place_url(char, placement: str, url: str) -> bool:
    """Put url into the given slot. Returns False when it is already there."""
    if placement == "gallery":
        if url in (char.artist_urls or []):
            return False
        char.artist_urls = [*(char.artist_urls or []), url]
    elif placement == "legacy_header":
        if url in (char.legacy_header_urls or []):
            return False
        char.legacy_header_urls = [*(char.legacy_header_urls or []), url]
    elif placement == "header":
        if char.header_url == url:
            return False
        char.header_url = url
    elif placement == "background":
        if char.background_image_url == url:
            return False
        char.background_image_url = url
    else:
        raise InvalidCharacter(f"Unknown placement: {placement}")
    return True


def unplace_url(char, placement: str, url: str) -> bool:
    if placement == "gallery":
        if url not in (char.artist_urls or []):
            return False
        char.artist_urls = [u for u in char.artist_urls if u != url]
    elif placement == "legacy_header":
        if url not in (char.legacy_header_urls or []):
            return False
        char.legacy_header_urls = [u for u in char.legacy_header_urls if u != url]
    elif placement == "header":
        if char.header_url != url:
            return False
        char.header_url = None
    elif placement == "background":
        if char.background_image_url != url:
            return False
        char.background_image_url = None
    else:
        raise InvalidCharacter(f"Unknown placement: {placement}")
    return True


async def add_artwork(
    session: AsyncSession,
    store: ObjectStorage,
    character_type: str,
    character_id: str,
    *,
    upload: Upload,
    artist_id: UUID,
    placement: str,
) -> str:
    """Upload a new artwork, record who drew it and place it on the character. Returns its public URL."""
    if placement not in ("gallery", "header", "legacy_header"):
        raise InvalidCharacter(f"Unknown placement: {placement}")
    if not upload or not upload.data:
        raise InvalidCharacter("Artwork file, character, and artist are required.")
    char = await get_character(session, character_type, character_id)
    artist = await session.get(Artist, artist_id)
    if not artist:
        raise InvalidCharacter("Could not find selected artist.")

    file_name = f"{character_id}-{slugify(artist.name)}-{int(time.time() * 1000)}.{upload.ext}"
    url = _put(store, ARTWORKS_BUCKET, file_name, upload)

    artwork = await session.scalar(select(Artwork).where(Artwork.artwork_url == url))
    if artwork:
        artwork.artist_id = artist.id
    else:
        session.add(Artwork(artwork_url=url, artist_id=artist.id))
    place_url(char, placement, url)
    await session.commit()
    log.info("artwork_added", character_id=character_id, placement=placement, url=url, artist_id=str(artist.id))
    return url


async def character_names(session: AsyncSession) -> dict[tuple[str, str], tuple[str, str]]:
    """(type, id) -> (name, image_url) for every character."""
    out = {}
    for character_type, model in CHARACTER_MODELS.items():
        for cid, name, image_url in (await session.execute(select(model.id, model.name, model.image_url))).all():
            out[(character_type, cid)] = (name, image_url)
    return out
