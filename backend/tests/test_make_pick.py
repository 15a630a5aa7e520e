from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from conftest import bearer, fetch_captain, fetch_draft, fetch_picks, fetch_player, fetch_queue, seed_pick, seed_queue
from draft_api.database import SessionLocal
from draft_api.models import Captain
from draft_api.services import pick_flow


def _body(seeded, captain: int, player: int, *, token: bool = True) -> dict:
    body = {
        "draft_id": str(seeded.draft_id),
        "captain_id": str(seeded.captain_id(captain)),
        "player_id": str(seeded.players[player]),
    }
    if token:
        body["captain_token"] = seeded.token(captain)
    return body


async def test_make_pick_happy_path(client, factory):
    seeded = await factory.create()
    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 0))

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "pick": {"player": "Player 1", "captain": "Captain 1", "pick_number": 1},
        "is_complete": False,
    }
    draft = await fetch_draft(seeded.draft_id)
    assert draft.current_pick_index == 1
    assert draft.status == "in_progress"
    player = await fetch_player(seeded.players[0])
    assert player.drafted_by_captain_id == seeded.captain_id(0)
    assert player.draft_pick_number == 1
    picks = await fetch_picks(seeded.draft_id)
    assert [(p.pick_number, p.is_auto_pick) for p in picks] == [(1, False)]


async def test_manager_can_pick_for_a_captain(client, factory):
    seeded = await factory.create()
    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 2, token=False), headers=bearer())
    assert resp.status_code == 200
    assert resp.json()["pick"]["pick_number"] == 1


async def test_other_users_cannot_pick_for_a_captain(client, factory):
    seeded = await factory.create()
    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 2, token=False), headers=bearer("someone_else"))
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden"}


async def test_invalid_captain_token(client, factory):
    seeded = await factory.create()
    body = _body(seeded, 0, 0)
    body["captain_token"] = "not-the-token"
    resp = await client.post("/api/picks/make", json=body)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Invalid captain token"


async def test_not_your_turn(client, factory):
    seeded = await factory.create()
    resp = await client.post("/api/picks/make", json=_body(seeded, 1, 0))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Not your turn to pick"}
    assert (await fetch_draft(seeded.draft_id)).current_pick_index == 0


async def test_player_already_drafted_by_someone_else(client, factory):
    seeded = await factory.create()
    await seed_pick(seeded.draft_id, seeded.captain_id(0), seeded.players[0], 1)
    resp = await client.post("/api/picks/make", json=_body(seeded, 1, 0))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Player not available"


async def test_cannot_draft_a_captain(client, factory):
    seeded = await factory.create()
    async with SessionLocal() as db:
        await db.execute(
            update(Captain).where(Captain.id == seeded.captain_id(2)).values(player_id=seeded.players[5])
        )
        await db.commit()
    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 5))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Cannot draft a captain"


async def test_draft_not_in_progress(client, factory):
    seeded = await factory.create(status="paused")
    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Draft is not in progress"


async def test_malformed_ids_are_rejected_before_lookup(client, factory):
    seeded = await factory.create()
    body = _body(seeded, 0, 0)
    body["player_id"] = "{" + body["player_id"] + "}"
    resp = await client.post("/api/picks/make", json=body)
    assert resp.status_code == 422
    assert resp.json()["error"] == "Invalid request"


async def test_unknown_draft(client, factory):
    seeded = await factory.create()
    body = _body(seeded, 0, 0)
    body["draft_id"] = "00000000-0000-4000-8000-000000000000"
    resp = await client.post("/api/picks/make", json=body)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Draft not found"}


async def test_replayed_pick_is_soft(client, factory):
    seeded = await factory.create()
    first = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert first.json()["success"] is True

    again = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert again.status_code == 200
    assert again.json() == {"error": "Pick already made", "pick_number": 1}
    assert (await fetch_draft(seeded.draft_id)).current_pick_index == 1


async def test_losing_the_pick_number_race_is_soft(client, factory):
    seeded = await factory.create()
    # Another request already claimed pick #1 but hasn't advanced the pointer yet.
    await seed_pick(seeded.draft_id, seeded.captain_id(0), seeded.players[1], 1, advance=False)

    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert resp.status_code == 200
    assert resp.json() == {"error": "Pick already made", "pick_number": 1}
    player = await fetch_player(seeded.players[0])
    assert player.drafted_by_captain_id is None
    assert len(await fetch_picks(seeded.draft_id)) == 1


async def test_pick_after_turn_moved_is_not_your_turn(client, factory):
    seeded = await factory.create()
    winner = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    # The second caller meant to pick at index 0, but the first has already landed.
    loser = await client.post("/api/picks/make", json=_body(seeded, 0, 1))

    assert winner.json()["success"] is True
    assert loser.status_code == 400
    assert loser.json()["error"] == "Not your turn to pick"
    assert len(await fetch_picks(seeded.draft_id)) == 1


async def test_simultaneous_picks_exactly_one_wins(client, factory, monkeypatch):
    seeded = await factory.create()
    real_insert_pick = pick_flow.insert_pick
    arrived = {"n": 0}
    both_validated = asyncio.Event()

    async def _insert_together(db, **kwargs):
        # Hold each request until both have read index 0 and passed validation.
        arrived["n"] += 1
        if arrived["n"] < 2:
            await asyncio.wait_for(both_validated.wait(), 5)
        else:
            both_validated.set()
        return await real_insert_pick(db, **kwargs)

    monkeypatch.setattr(pick_flow, "insert_pick", _insert_together)
    first, second = await asyncio.gather(
        client.post("/api/picks/make", json=_body(seeded, 0, 0)),
        client.post("/api/picks/make", json=_body(seeded, 0, 1)),
    )

    assert (first.status_code, second.status_code) == (200, 200)
    bodies = [first.json(), second.json()]
    winners = [b for b in bodies if b.get("success") is True]
    losers = [b for b in bodies if "error" in b]
    assert len(winners) == 1
    assert losers == [{"error": "Pick already made", "pick_number": 1}]

    picks = await fetch_picks(seeded.draft_id)
    assert len(picks) == 1
    drafted = [await fetch_player(pid) for pid in seeded.players[:2]]
    assert sorted(p.draft_pick_number or 0 for p in drafted) == [0, 1]
    assert (await fetch_draft(seeded.draft_id)).current_pick_index == 1


async def test_pick_purges_player_from_every_queue(client, factory):
    seeded = await factory.create()
    await seed_queue(seeded.captain_id(1), [seeded.players[0], seeded.players[1]])

    await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    queue = await fetch_queue(seeded.captain_id(1))
    assert [e.player_id for e in queue] == [seeded.players[1]]


async def test_final_pick_completes_without_advancing(client, factory):
    seeded = await factory.create(captains=2, players=2)
    await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    resp = await client.post("/api/picks/make", json=_body(seeded, 1, 1))

    assert resp.json()["is_complete"] is True
    draft = await fetch_draft(seeded.draft_id)
    assert draft.status == "completed"
    assert draft.current_pick_index == 1
    assert draft.current_pick_started_at is None

    # A duplicate of the completing pick still comes back soft.
    replay = await client.post("/api/picks/make", json=_body(seeded, 1, 1))
    assert replay.status_code == 200
    assert replay.json()["error"] == "Pick already made"


async def test_manual_pick_resets_timeout_streak(client, factory):
    seeded = await factory.create()
    async with SessionLocal() as db:
        await db.execute(update(Captain).where(Captain.id == seeded.captain_id(0)).values(consecutive_timeout_picks=1))
        await db.commit()

    await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert (await fetch_captain(seeded.captain_id(0))).consecutive_timeout_picks == 0


async def test_lost_pointer_race_rolls_back_pick_and_player(client, factory, monkeypatch):
    seeded = await factory.create()

    async def _lost(*args, **kwargs):
        return False

    monkeypatch.setattr(pick_flow, "advance_draft", _lost)

    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert resp.status_code == 409
    assert resp.json()["error"] == "Draft state changed concurrently. Please try again."
    assert await fetch_picks(seeded.draft_id) == []
    player = await fetch_player(seeded.players[0])
    assert player.drafted_by_captain_id is None
    assert player.draft_pick_number is None
    assert (await fetch_draft(seeded.draft_id)).current_pick_index == 0


async def test_player_update_failure_removes_the_pick(client, factory, monkeypatch):
    seeded = await factory.create()

    async def _boom(*args, **kwargs):
        raise OperationalError("UPDATE players", {}, Exception("disk I/O error"))

    monkeypatch.setattr(pick_flow, "mark_player_drafted", _boom)

    resp = await client.post("/api/picks/make", json=_body(seeded, 0, 0))
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to update player"}
    assert await fetch_picks(seeded.draft_id) == []


@pytest.mark.parametrize("missing", ["draft_id", "captain_id", "player_id"])
async def test_missing_fields(client, factory, missing):
    seeded = await factory.create()
    body = _body(seeded, 0, 0)
    del body[missing]
    resp = await client.post("/api/picks/make", json=body)
    assert resp.status_code == 422
