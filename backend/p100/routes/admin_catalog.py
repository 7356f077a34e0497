from __future__ import annotations
from typing import Literal
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession

from p100.auth_deps import require_admin
from p100.db import get_session
from p100.models.artist import Artist
from p100.routes.admin import ADMIN_PREFIX
from p100.schemas.artwork import ArtistIn, ArtistPublic, ArtworkPublic, ArtworkUpdate, ArtworkUsage, UsageRequest
from p100.schemas.character import CharacterPublic, CharacterUpdate
from p100.services import artworks as art
from p100.services.characters import (
    Upload, list_characters, create_character, update_character, delete_character, add_artwork,
    CharacterNotFound, CharacterExists, InvalidCharacter,
)
from p100.services.storage import ObjectStorage, StorageError, get_storage

router = APIRouter(prefix=ADMIN_PREFIX, tags=["admin"], dependencies=[Depends(require_admin)])

CharacterType = Literal["killer", "survivor"]


async def _upload(f: UploadFile | None) -> Upload | None:
    if f is None or not f.filename:
        return None
    return Upload(filename=f.filename, data=await f.read())


def _artwork_public(artwork, artist, usages) -> ArtworkPublic:
    return ArtworkPublic(
        id=artwork.id,
        artwork_url=artwork.artwork_url,
        artist=ArtistPublic.model_validate(artist) if artist else None,
        notes=artwork.notes,
        created_at=artwork.created_at,
        updated_at=artwork.updated_at,
        usages=[ArtworkUsage(**u) for u in usages],
    )


# --- characters ---

@router.get("/characters/{character_type}", response_model=list[CharacterPublic])
async def characters(character_type: CharacterType, session: AsyncSession = Depends(get_session)):
    return [CharacterPublic.model_validate(c) for c in await list_characters(session, character_type)]


@router.post("/characters/{character_type}", status_code=201, response_model=CharacterPublic)
async def new_character(
    character_type: CharacterType,
    id: str = Form(...),
    name: str = Form(...),
    image: UploadFile = File(...),
    background_image: UploadFile | None = File(default=None),
    header_image: UploadFile | None = File(default=None),
    artist_images: list[UploadFile] | None = File(default=None),
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    gallery = [u for u in [await _upload(f) for f in artist_images or []] if u]
    try:
        char = await create_character(
            session,
            store,
            character_type,
            character_id=id.strip(),
            name=name,
            image=await _upload(image),
            background=await _upload(background_image),
            header=await _upload(header_image),
            gallery=gallery,
        )
    except InvalidCharacter as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CharacterExists as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return CharacterPublic.model_validate(char)


@router.put("/characters/{character_type}/{character_id}", response_model=CharacterPublic)
async def edit_character(
    character_type: CharacterType,
    character_id: str,
    payload: CharacterUpdate,
    session: AsyncSession = Depends(get_session),
):
    try:
        char = await update_character(session, character_type, character_id, payload.model_dump(exclude_unset=True))
    except CharacterNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCharacter as e:
        raise HTTPException(status_code=422, detail=str(e))
    return CharacterPublic.model_validate(char)


@router.delete("/characters/{character_type}/{character_id}", status_code=204)
async def remove_character(character_type: CharacterType, character_id: str, session: AsyncSession = Depends(get_session)):
    try:
        await delete_character(session, character_type, character_id)
    except CharacterNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/characters/{character_type}/{character_id}/artworks", status_code=201)
async def upload_artwork(
    character_type: CharacterType,
    character_id: str,
    file: UploadFile = File(...),
    artist_id: UUID = Form(...),
    placement: Literal["gallery", "header", "legacy_header"] = Form(default="gallery"),
    session: AsyncSession = Depends(get_session),
    store: ObjectStorage = Depends(get_storage),
):
    try:
        url = await add_artwork(
            session, store, character_type, character_id,
            upload=await _upload(file), artist_id=artist_id, placement=placement,
        )
    except CharacterNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCharacter as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "message": "Artwork added successfully!", "artwork_url": url}


# --- artists ---

@router.get("/artists", response_model=list[ArtistPublic])
async def artists(session: AsyncSession = Depends(get_session)):
    return [ArtistPublic.model_validate(a) for a in await art.list_artists(session)]


@router.post("/artists", status_code=201, response_model=ArtistPublic)
async def new_artist(payload: ArtistIn, session: AsyncSession = Depends(get_session)):
    try:
        artist = await art.create_artist(session, payload.name, payload.url, payload.platform)
    except art.InvalidArtwork as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ArtistPublic.model_validate(artist)


@router.put("/artists/{artist_id}", response_model=ArtistPublic)
async def edit_artist(artist_id: UUID, payload: ArtistIn, session: AsyncSession = Depends(get_session)):
    try:
        artist = await art.update_artist(session, artist_id, payload.name, payload.url, payload.platform)
    except art.ArtistNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except art.InvalidArtwork as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ArtistPublic.model_validate(artist)


@router.delete("/artists/{artist_id}", status_code=204)
async def remove_artist(artist_id: UUID, session: AsyncSession = Depends(get_session)):
    try:
        await art.delete_artist(session, artist_id)
    except art.ArtistNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- artworks ---

@router.get("/artworks", response_model=list[ArtworkPublic])
async def artworks(session: AsyncSession = Depends(get_session)):
    return [_artwork_public(a, artist, usages) for a, artist, usages in await art.list_artworks(session)]


@router.put("/artworks/{artwork_id}", response_model=ArtworkPublic)
async def edit_artwork(artwork_id: UUID, payload: ArtworkUpdate, session: AsyncSession = Depends(get_session)):
    try:
        artwork = await art.update_artwork(session, artwork_id, payload.artist_id, payload.notes)
    except (art.ArtworkNotFound, art.ArtistNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    usages = (await art.usages_by_url(session)).get(artwork.artwork_url, [])
    artist = await session.get(Artist, artwork.artist_id) if artwork.artist_id else None
    return _artwork_public(artwork, artist, usages)


@router.delete("/artworks/{artwork_id}")
async def remove_artwork(artwork_id: UUID, session: AsyncSession = Depends(get_session)):
    try:
        removed = await art.delete_artwork(session, artwork_id)
    except art.ArtworkNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "placements_removed": removed}


@router.post("/artworks/{artwork_id}/usages", status_code=201)
async def add_usage(artwork_id: UUID, payload: UsageRequest, session: AsyncSession = Depends(get_session)):
    try:
        await art.add_usage(session, artwork_id, payload.character_type, payload.character_id, payload.usage_type)
    except (art.ArtworkNotFound, CharacterNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except art.DuplicateUsage as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True}


@router.delete("/artworks/{artwork_id}/usages")
async def remove_usage(artwork_id: UUID, payload: UsageRequest, session: AsyncSession = Depends(get_session)):
    try:
        await art.remove_usage(session, artwork_id, payload.character_type, payload.character_id, payload.usage_type)
    except (art.ArtworkNotFound, CharacterNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}
