from __future__ import annotations

from sqlalchemy import update

from conftest import bearer, fetch_captain, fetch_draft, seed_pick
from draft_api.database import SessionLocal
from draft_api.models import Captain


async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.json() == {"ok": True}


async def test_start_draft(client, factory):
    seeded = await factory.create(status="not_started")
    resp = await client.post(f"/api/drafts/{seeded.draft_id}/start", headers=bearer())

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "status": "in_progress", "current_pick_index": 0}
    draft = await fetch_draft(seeded.draft_id)
    assert draft.status == "in_progress"
    assert draft.current_pick_started_at is not None


async def test_start_needs_two_captains(client, factory):
    seeded = await factory.create(status="not_started", captains=1)
    resp = await client.post(f"/api/drafts/{seeded.draft_id}/start", headers=bearer())
    assert resp.status_code == 400
    assert resp.json()["error"] == "At least 2 captains are required to start"


async def test_start_needs_enough_players(client, factory):
    seeded = await factory.create(status="not_started", captains=3, players=2)
    resp = await client.post(f"/api/drafts/{seeded.draft_id}/start", headers=bearer())
    assert resp.status_code == 400
    assert resp.json()["error"] == "Not enough available players to start"


async def test_start_twice(client, factory):
    seeded = await factory.create(status="not_started")
    await client.post(f"/api/drafts/{seeded.draft_id}/start", headers=bearer())
    resp = await client.post(f"/api/drafts/{seeded.draft_id}/start", headers=bearer())
    assert resp.status_code == 400
    assert resp.json()["error"] == "Draft has already started"


async def test_pause_and_resume(client, factory):
    seeded = await factory.create()
    await seed_pick(seeded.draft_id, seeded.captain_id(0), seeded.players[0], 1)

    paused = await client.post(f"/api/drafts/{seeded.draft_id}/pause", headers=bearer())
    assert paused.json() == {"success": True, "status": "paused", "current_pick_index": 1}
    assert (await fetch_draft(seeded.draft_id)).current_pick_started_at is None

    resumed = await client.post(f"/api/drafts/{seeded.draft_id}/resume", headers=bearer())
    assert resumed.json()["status"] == "in_progress"
    draft = await fetch_draft(seeded.draft_id)
    assert (draft.status, draft.current_pick_index) == ("in_progress", 1)
    assert draft.current_pick_started_at is not None


async def test_lifecycle_requires_manager(client, factory):
    seeded = await factory.create()
    resp = await client.post(f"/api/drafts/{seeded.draft_id}/pause", headers=bearer("stranger"))
    assert resp.status_code == 403
    assert (await fetch_draft(seeded.draft_id)).status == "in_progress"


async def test_bad_draft_id_in_path(client):
    resp = await client.post("/api/drafts/12345/start", headers=bearer())
    assert resp.status_code == 422
    assert resp.json() == {"error": "Invalid draft id"}


async def test_read_model(client, factory):
    seeded = await factory.create(captains=3, players=6)
    async with SessionLocal() as db:
        await db.execute(update(Captain).where(Captain.id == seeded.captain_id(2)).values(player_id=seeded.players[5]))
        await db.commit()
    await seed_pick(seeded.draft_id, seeded.captain_id(0), seeded.players[0], 1)

    resp = await client.get(f"/api/drafts/{seeded.draft_id}")
    assert resp.status_code == 200
    body = resp.json()

    assert body["current_pick_index"] == 1
    assert body["current_captain_id"] == str(seeded.captain_id(1))
    # 1 pick made + 4 still available (one player is a captain).
    c = [str(seeded.captain_id(i)) for i in range(3)]
    assert body["pick_order"] == [c[0], c[1], c[2], c[2], c[1]]
    assert all("access_token" not in cap for cap in body["captains"])
    assert [p["pick_number"] for p in body["picks"]] == [1]


async def test_read_model_unknown_draft(client):
    resp = await client.get("/api/drafts/00000000-0000-4000-8000-000000000000")
    assert resp.status_code == 404


async def test_toggle_auto_pick(client, factory):
    seeded = await factory.create()
    async with SessionLocal() as db:
        await db.execute(update(Captain).where(Captain.id == seeded.captain_id(1)).values(consecutive_timeout_picks=2))
        await db.commit()

    resp = await client.post(
        "/api/captains/auto-pick",
        json={
            "draft_id": str(seeded.draft_id),
            "captain_id": str(seeded.captain_id(1)),
            "captain_token": seeded.token(1),
            "enabled": True,
        },
    )
    assert resp.json() == {"success": True, "captain_id": str(seeded.captain_id(1)), "auto_pick_enabled": True}
    cap = await fetch_captain(seeded.captain_id(1))
    assert (cap.auto_pick_enabled, cap.consecutive_timeout_picks) == (True, 0)


async def test_toggle_auto_pick_unknown_captain(client, factory):
    seeded = await factory.create()
    other = await factory.create()
    resp = await client.post(
        "/api/captains/auto-pick",
        json={"draft_id": str(seeded.draft_id), "captain_id": str(other.captain_id(0)), "enabled": False},
        headers=bearer(),
    )
    assert resp.status_code == 404
