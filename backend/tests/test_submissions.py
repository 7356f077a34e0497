import pytest
from sqlalchemy import select
from p100.models.blacklist import BlacklistedUser
from p100.models.player import Player
from p100.models.submission import Submission
from p100.services.submissions import DUPLICATE_MESSAGE
from conftest import ADMIN, TestSession, png_bytes


async def _submit(client, username="Otzdarva", character_type="killer", character_id="the-trapper", data=None, comment=None):
    form = {"username": username, "character_type": character_type, "character_id": character_id}
    if comment is not None:
        form["comment"] = comment
    files = {"screenshot": ("proof.png", data if data is not None else png_bytes(), "image/png")}
    return await client.post("/submissions", data=form, files=files)


async def _rows(model, *where):
    q = select(model)
    if where:
        q = q.where(*where)
    async with TestSession() as s:
        return list((await s.execute(q)).scalars().all())


@pytest.mark.asyncio
async def test_submit_uploads_and_creates_pending(client, storage, characters):
    r = await _submit(client, comment="first try")
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert body["character_type"] == "killer"
    assert body["character_name"] == "The Trapper"
    assert body["comment"] == "first try"

    paths = storage.paths("screenshots")
    assert len(paths) == 1 and paths[0].endswith(".png")
    assert body["screenshot_url"] == storage.public_url("screenshots", paths[0])


@pytest.mark.asyncio
async def test_duplicate_submission_is_rejected_and_audited(client, storage, characters):
    assert (await _submit(client)).status_code == 201
    r = await _submit(client)
    assert r.status_code == 409
    assert r.json()["detail"] == DUPLICATE_MESSAGE

    rows = await _rows(Submission, Submission.username == "Otzdarva")
    assert sorted(s.status for s in rows) == ["pending", "rejected"]
    audit = next(s for s in rows if s.status == "rejected")
    assert audit.rejection_reason == "Duplicate submission"
    assert audit.screenshot_url == ""
    # only the first upload reached storage
    assert len(storage.paths("screenshots")) == 1


@pytest.mark.asyncio
async def test_same_user_other_character_is_fine(client, characters):
    assert (await _submit(client)).status_code == 201
    assert (await _submit(client, character_id="the-wraith")).status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize("kwargs,detail", [
    ({"username": "bad!name"}, "Username must be 1-50 characters"),
    ({"username": "x" * 51}, "Username must be 1-50 characters"),
    ({"character_id": "the-nobody"}, "Invalid character selection"),
    ({"character_type": "monster"}, "Invalid character selection"),
    ({"data": b"plain text, not an image"}, "Only JPEG, PNG, and WebP images are allowed"),
])
async def test_submit_validation(client, storage, characters, kwargs, detail):
    r = await _submit(client, **kwargs)
    assert r.status_code == 422
    assert r.json()["detail"] == detail
    assert storage.paths("screenshots") == []


@pytest.mark.asyncio
async def test_blacklisted_username_refused(client, characters):
    async with TestSession() as s:
        s.add(BlacklistedUser(username="Cheater", reason="fake screenshots"))
        await s.commit()
    r = await _submit(client, username="cheater")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_approve_creates_player_once(client, admin_headers, characters):
    sub_id = (await _submit(client)).json()["id"]

    r = await client.post(f"{ADMIN}/submissions/{sub_id}/review", json={"status": "approved"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["player_created"] is True
    assert r.json()["submission"]["status"] == "approved"

    # terminal state
    r = await client.post(f"{ADMIN}/submissions/{sub_id}/review", json={"status": "rejected"}, headers=admin_headers)
    assert r.status_code == 409

    # a legacy approval no longer blocks a new submission; approving it again does not duplicate the player
    r = await client.post(f"{ADMIN}/submissions/{sub_id}/legacy", json={"legacy": True}, headers=admin_headers)
    assert r.status_code == 200 and r.json()["legacy"] is True
    second = (await _submit(client)).json()["id"]
    r = await client.post(f"{ADMIN}/submissions/{second}/review", json={"status": "approved"}, headers=admin_headers)
    assert r.json()["player_created"] is False

    players = await _rows(Player, Player.username == "Otzdarva")
    assert len(players) == 1
    assert players[0].killer_id == "the-trapper"


@pytest.mark.asyncio
async def test_reject_keeps_reason(client, admin_headers, characters):
    sub_id = (await _submit(client)).json()["id"]
    r = await client.post(
        f"{ADMIN}/submissions/{sub_id}/review",
        json={"status": "rejected", "rejection_reason": "Blurry screenshot"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["submission"]["rejection_reason"] == "Blurry screenshot"
    assert await _rows(Player) == []
    # rejected does not block a resubmission
    assert (await _submit(client)).status_code == 201


@pytest.mark.asyncio
async def test_status_lists_submissions_for_username(client, characters):
    await _submit(client)
    await _submit(client, character_type="survivor", character_id="dwight-fairfield")
    await _submit(client, username="SomeoneElse")

    r = await client.get("/submissions/status", params={"username": "Otzdarva"})
    assert r.status_code == 200
    names = sorted(s["character_name"] for s in r.json())
    assert names == ["Dwight Fairfield", "The Trapper"]



@pytest.mark.asyncio
async def test_delete_screenshots(client, storage, admin_headers, characters):
    first = (await _submit(client)).json()
    second = (await _submit(client, character_id="the-wraith")).json()
    await _submit(client, character_id="the-hillbilly")  # stays pending

    r = await client.delete(f"{ADMIN}/submissions/{first['id']}/screenshot", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["screenshot_url"] == ""
    assert len(storage.paths("screenshots")) == 2

    r = await client.delete(f"{ADMIN}/submissions/{first['id']}/screenshot", headers=admin_headers)
    assert r.status_code == 400

    await client.post(f"{ADMIN}/submissions/{second['id']}/review", json={"status": "approved"}, headers=admin_headers)
    r = await client.post(f"{ADMIN}/submissions/screenshots/bulk-delete", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["deleted"] == 1
    # the pending submission keeps its screenshot
    assert len(storage.paths("screenshots")) == 1


@pytest.mark.asyncio
async def test_suggestions_come_from_listed_players(client, characters):
    async with TestSession() as s:
        s.add_all([
            Player(username="Otzdarva", killer_id="the-trapper"),
            Player(username="Otzdarva", survivor_id="dwight-fairfield"),
            Player(username="Hens", survivor_id="dwight-fairfield"),
        ])
        await s.commit()
    await _submit(client, username="Otzpending")

    r = await client.get("/submissions/suggestions", params={"q": "otz"})
    assert r.json() == [{"username": "Otzdarva", "count": 2}]
    r = await client.get("/submissions/suggestions", params={"q": "o"})
    assert r.json() == []
