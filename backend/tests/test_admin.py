import uuid
from datetime import datetime, timedelta, timezone
import pytest
from p100.models.submission import Submission
from conftest import ADMIN, TestSession

LOGIN = f"{ADMIN}/login"


@pytest.mark.asyncio
async def test_login_needs_secret_key(client):
    r = await client.post(LOGIN, json={"password": "correct horse"})
    assert r.status_code == 404
    r = await client.post(LOGIN, params={"key": "wrong"}, json={"password": "correct horse"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_login_issues_admin_token(client):
    r = await client.post(LOGIN, params={"key": "open-sesame"}, json={"password": "correct horse"})
    assert r.status_code == 200
    token = r.json()["access"]
    r = await client.get(f"{ADMIN}/blacklist", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_locks_after_repeated_failures(client):
    for _ in range(5):
        r = await client.post(LOGIN, params={"key": "open-sesame"}, json={"password": "nope"})
        assert r.status_code == 401
    r = await client.post(LOGIN, params={"key": "open-sesame"}, json={"password": "correct horse"})
    assert r.status_code == 429
    assert int(r.headers["Retry-After"]) > 0


@pytest.mark.asyncio
async def test_admin_routes_need_token(client):
    assert (await client.get(f"{ADMIN}/submissions")).status_code == 401
    r = await client.get(f"{ADMIN}/submissions", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert (await client.get(f"{ADMIN}/storage/artworks")).status_code == 401


async def _seed_submissions(n: int):
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    async with TestSession() as s:
        rows = [
            Submission(username=f"user{i}", killer_id="the-trapper", screenshot_url="", submitted_at=start + timedelta(minutes=i))
            for i in range(n)
        ]
        s.add_all(rows)
        await s.commit()
        return [r.id for r in rows]


@pytest.mark.asyncio
async def test_submission_pagination_and_filters(client, admin_headers, characters):
    await _seed_submissions(25)

    r = await client.get(f"{ADMIN}/submissions", headers=admin_headers)
    page = r.json()
    assert page["total"] == 25 and page["page_size"] == 20 and page["has_more"] is True
    assert len(page["items"]) == 20
    assert page["items"][0]["username"] == "user24"

    page = (await client.get(f"{ADMIN}/submissions", params={"page": 2}, headers=admin_headers)).json()
    assert len(page["items"]) == 5 and page["has_more"] is False

    page = (await client.get(f"{ADMIN}/submissions", params={"sort": "oldest"}, headers=admin_headers)).json()
    assert page["items"][0]["username"] == "user0"

    page = (await client.get(f"{ADMIN}/submissions", params={"search": "user1"}, headers=admin_headers)).json()
    assert page["total"] == 11

    page = (await client.get(f"{ADMIN}/submissions", params={"type": "survivor"}, headers=admin_headers)).json()
    assert page["total"] == 0
    page = (await client.get(f"{ADMIN}/submissions", params={"status": "approved"}, headers=admin_headers)).json()
    assert page["total"] == 0


@pytest.mark.asyncio
async def test_bulk_review_reports_each_id(client, admin_headers, characters):
    ids = await _seed_submissions(2)
    missing = uuid.uuid4()
    r = await client.post(
        f"{ADMIN}/submissions/bulk-review",
        json={"ids": [str(ids[0]), str(missing), str(ids[1])], "status": "approved"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    results = r.json()
    assert [x["success"] for x in results] == [True, False, True]
    assert results[1]["message"] == "Submission not found"
    assert all(x["player_created"] for x in (results[0], results[2]))


@pytest.mark.asyncio
async def test_player_crud(client, admin_headers, characters):
    body = {"username": "Hens", "character_type": "survivor", "character_id": "dwight-fairfield", "p200": True}
    r = await client.post(f"{ADMIN}/players", json=body, headers=admin_headers)
    assert r.status_code == 201
    player = r.json()
    assert player["p200"] is True and player["character_id"] == "dwight-fairfield"

    assert (await client.post(f"{ADMIN}/players", json=body, headers=admin_headers)).status_code == 409

    r = await client.put(f"{ADMIN}/players/{player['id']}", json={"favorite": True, "priority": 4}, headers=admin_headers)
    assert r.json()["favorite"] is True and r.json()["priority"] == 4

    r = await client.get(f"{ADMIN}/players", params={"character_id": "dwight-fairfield"}, headers=admin_headers)
    assert [p["username"] for p in r.json()] == ["Hens"]

    assert (await client.delete(f"{ADMIN}/players/{player['id']}", headers=admin_headers)).status_code == 204
    assert (await client.delete(f"{ADMIN}/players/{player['id']}", headers=admin_headers)).status_code == 404


@pytest.mark.asyncio
async def test_blacklist_crud(client, admin_headers):
    r = await client.post(f"{ADMIN}/blacklist", json={"username": "Cheater", "reason": "edited screenshot"}, headers=admin_headers)
    assert r.status_code == 201
    entry = r.json()
    assert entry["created_by"] == "admin"
    assert (await client.post(f"{ADMIN}/blacklist", json={"username": "cheater"}, headers=admin_headers)).status_code == 409

    listed = (await client.get(f"{ADMIN}/blacklist", headers=admin_headers)).json()
    assert [e["username"] for e in listed] == ["Cheater"]

    assert (await client.delete(f"{ADMIN}/blacklist/{entry['id']}", headers=admin_headers)).status_code == 204
    assert (await client.get(f"{ADMIN}/blacklist", headers=admin_headers)).json() == []


@pytest.mark.asyncio
async def test_player_usernames_are_validated(client, admin_headers, characters):
    body = {"username": "<b>bad</b>", "character_type": "killer", "character_id": "the-trapper"}
    assert (await client.post(f"{ADMIN}/players", json=body, headers=admin_headers)).status_code == 422

    body["username"] = "  Hens  "
    r = await client.post(f"{ADMIN}/players", json=body, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["username"] == "Hens"
    hens = r.json()["id"]

    body["username"] = "Otz"
    otz = (await client.post(f"{ADMIN}/players", json=body, headers=admin_headers)).json()["id"]

    r = await client.put(f"{ADMIN}/players/{otz}", json={"username": "Hens"}, headers=admin_headers)
    assert r.status_code == 409
    r = await client.put(f"{ADMIN}/players/{otz}", json={"username": "javascript:alert(1)"}, headers=admin_headers)
    assert r.status_code == 422
    r = await client.put(f"{ADMIN}/players/{hens}", json={"username": "Hens"}, headers=admin_headers)
    assert r.status_code == 200

    r = await client.get(f"{ADMIN}/players", params={"sort": "username_asc"}, headers=admin_headers)
    assert [p["username"] for p in r.json()] == ["Hens", "Otz"]
