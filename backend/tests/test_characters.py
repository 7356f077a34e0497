from datetime import datetime, timedelta, timezone
import pytest
from sqlalchemy import select
from p100.models.artist import Artist, Artwork
from p100.models.character import Killer
from p100.models.player import Player
from p100.models.submission import Submission
from conftest import ADMIN, TestSession, png_bytes


async def _add_players(*rows):
    start = datetime(2024, 6, 1, tzinfo=timezone.utc)
    async with TestSession() as s:
        for i, (username, priority) in enumerate(rows):
            s.add(Player(username=username, killer_id="the-trapper", priority=priority, added_at=start + timedelta(days=i)))
        await s.commit()


@pytest.mark.asyncio
async def test_lists_follow_display_order(client, characters):
    r = await client.get("/killers")
    assert [k["id"] for k in r.json()] == ["the-trapper", "the-wraith", "the-hillbilly"]
    r = await client.get("/survivors")
    assert [s["id"] for s in r.json()] == ["dwight-fairfield"]


@pytest.mark.asyncio
async def test_character_page_orders_players_and_wraps(client, characters):
    await _add_players(("early", 0), ("late", 0), ("pinned", 5))
    r = await client.get("/killers/the-trapper")
    assert r.status_code == 200
    page = r.json()
    assert [p["username"] for p in page["players"]] == ["pinned", "early", "late"]
    assert page["previous_id"] == "the-hillbilly"
    assert page["next_id"] == "the-wraith"

    page = (await client.get("/killers/the-hillbilly")).json()
    assert page["next_id"] == "the-trapper"


@pytest.mark.asyncio
async def test_unknown_character_is_404(client, characters):
    assert (await client.get("/killers/the-nobody")).status_code == 404
    # killers and survivors are separate namespaces
    assert (await client.get("/survivors/the-trapper")).status_code == 404


@pytest.mark.asyncio
async def test_player_reads(client, characters):
    await _add_players(("Otzdarva", 0), ("Otz_fan", 0))
    async with TestSession() as s:
        s.add(Player(username="Otzdarva", survivor_id="dwight-fairfield", p200=True))
        await s.commit()

    hits = (await client.get("/players/search", params={"q": "otz"})).json()
    assert hits == [{"username": "Otz_fan", "count": 1}, {"username": "Otzdarva", "count": 2}]
    assert (await client.get("/players/search", params={"q": "o"})).json() == []

    profile = (await client.get("/players/profile/Otzdarva")).json()
    assert profile["total"] == 2
    assert profile["killers"][0]["character_name"] == "The Trapper"
    assert profile["survivors"][0]["p200"] is True
    assert (await client.get("/players/profile/nobody")).status_code == 404

    recent = (await client.get("/players/recent")).json()
    assert len(recent) == 3
    assert {p["character_name"] for p in recent} == {"The Trapper", "Dwight Fairfield"}

    highlight = (await client.get("/players/highlight")).json()
    assert highlight["username"] in {"Otzdarva", "Otz_fan"}
    again = (await client.get("/players/highlight")).json()
    assert again["username"] == highlight["username"]


@pytest.mark.asyncio
async def test_highlight_without_players(client, characters):
    assert (await client.get("/players/highlight")).status_code == 404


@pytest.mark.asyncio
async def test_create_character_uploads_to_conventional_buckets(client, storage, admin_headers, characters):
    files = [
        ("image", ("nurse.png", png_bytes(), "image/png")),
        ("background_image", ("bg.png", png_bytes(), "image/png")),
        ("artist_images", ("a1.png", png_bytes(), "image/png")),
        ("artist_images", ("a2.png", png_bytes(), "image/png")),
    ]
    r = await client.post(
        f"{ADMIN}/characters/killer",
        data={"id": "the-nurse", "name": "The Nurse"},
        files=files,
        headers=admin_headers,
    )
    assert r.status_code == 201
    char = r.json()
    assert char["display_order"] == 4
    assert char["image_url"] == storage.public_url("killerimages", "the-nurse.png")
    assert char["background_image_url"] == storage.public_url("backgrounds", "the-nurse.png")
    assert char["header_url"] is None
    assert len(char["artist_urls"]) == 2
    assert len(storage.paths("artworks")) == 2

    r = await client.post(
        f"{ADMIN}/characters/killer",
        data={"id": "the-nurse", "name": "The Nurse"},
        files=[("image", ("nurse.png", png_bytes(), "image/png"))],
        headers=admin_headers,
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_update_character_fields(client, admin_headers, characters):
    url = "https://cdn.example.com/storage/v1/object/public/artworks/x.png"
    r = await client.put(
        f"{ADMIN}/characters/killer/the-wraith",
        json={"header_url": url, "artist_urls": [url], "background_credit_name": "Someone"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["header_url"] == url and body["artist_urls"] == [url]
    assert body["name"] == "The Wraith"


@pytest.mark.asyncio
async def test_delete_character_cascades(client, admin_headers, characters):
    await _add_players(("Otzdarva", 0))
    async with TestSession() as s:
        s.add(Submission(username="Otzdarva", killer_id="the-trapper", screenshot_url=""))
        s.add(Submission(username="Otzdarva", killer_id="the-wraith", screenshot_url=""))
        await s.commit()

    r = await client.delete(f"{ADMIN}/characters/killer/the-trapper", headers=admin_headers)
    assert r.status_code == 204

    async with TestSession() as s:
        assert await s.get(Killer, "the-trapper") is None
        assert (await s.execute(select(Player))).scalars().all() == []
        left = (await s.execute(select(Submission))).scalars().all()
        assert [x.killer_id for x in left] == ["the-wraith"]

    assert (await client.delete(f"{ADMIN}/characters/killer/the-trapper", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_add_artwork_records_attribution(client, storage, admin_headers, characters):
    async with TestSession() as s:
        artist = Artist(name="Jane Doe", slug="jane-doe", url="https://twitter.com/jane", platform="twitter")
        s.add(artist)
        await s.commit()

    r = await client.post(
        f"{ADMIN}/characters/killer/the-trapper/artworks",
        data={"artist_id": str(artist.id), "placement": "gallery"},
        files={"file": ("art.webp", b"RIFF....WEBP", "image/webp")},
        headers=admin_headers,
    )
    assert r.status_code == 201
    url = r.json()["artwork_url"]
    (path,) = storage.paths("artworks")
    assert path.startswith("the-trapper-jane-doe-") and path.endswith(".webp")

    async with TestSession() as s:
        artwork = (await s.execute(select(Artwork))).scalar_one()
        assert artwork.artwork_url == url and artwork.artist_id == artist.id

    page = (await client.get("/killers/the-trapper")).json()
    assert page["character"]["artist_urls"] == [url]
    assert page["credits"] == [{
        "url": url, "usage_type": "gallery", "artist_name": "Jane Doe",
        "artist_url": "https://twitter.com/jane", "platform": "twitter",
    }]

    credits = (await client.get("/credits")).json()
    assert credits[0]["name"] == "Jane Doe" and credits[0]["artwork_count"] == 1


@pytest.mark.asyncio
async def test_update_character_keeps_required_image(client, admin_headers, characters):
    r = await client.put(f"{ADMIN}/characters/killer/the-trapper", json={"image_url": None}, headers=admin_headers)
    assert r.status_code == 422
    r = await client.put(f"{ADMIN}/characters/killer/the-trapper", json={"name": "  "}, headers=admin_headers)
    assert r.status_code == 422

    r = await client.get("/killers/the-trapper")
    assert r.json()["character"]["image_url"] == "https://cdn.example.com/k/trapper.png"
