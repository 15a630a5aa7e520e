from __future__ import annotations

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator
from datetime import timedelta

# Settings are read at import time, so the environment has to be in place first.
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="captains-draft-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["APP_ENV"] = "dev"
os.environ["AUTH_OPTIONAL_IN_DEV"] = "true"
os.environ["CLERK_JWKS_URL"] = ""
os.environ["AUTO_PICK_SECRET"] = "scheduler-secret"

import httpx
import jwt
import pytest
from sqlalchemy import select

from draft_api.database import SessionLocal, engine
from draft_api.main import create_app
from draft_api.models import Base, Captain, Draft, DraftPick, Player, QueueEntry, User
from draft_api.services.clock import utcnow
from draft_api.services.rate_limit import reset_rate_limiters

MANAGER_CLERK_ID = "user_manager"
_SIGNING_KEY = "test-signing-key-not-used-for-verification"


def bearer(clerk_id: str = MANAGER_CLERK_ID) -> dict[str, str]:
    """Authorization header for a manager. Dev mode reads the subject without verifying the signature."""
    token = jwt.encode({"sub": clerk_id}, _SIGNING_KEY, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    reset_rate_limiters()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections are bound to this test's event loop.
    await engine.dispose()


@pytest.fixture
async def client() -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=create_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class DraftFactory:
    """Seeds a draft straight into the database, bypassing the API."""

    async def create(
        self,
        *,
        captains: int = 3,
        players: int = 6,
        draft_type: str = "snake",
        status: str = "in_progress",
        current_pick_index: int = 0,
        time_limit_seconds: int = 60,
        started_seconds_ago: float = 0,
        manager_clerk_id: str = MANAGER_CLERK_ID,
    ) -> Seeded:
        async with SessionLocal() as db:
            manager = (await db.execute(select(User).where(User.clerk_id == manager_clerk_id))).scalar_one_or_none()
            if manager is None:
                manager = User(clerk_id=manager_clerk_id, username=manager_clerk_id)
                db.add(manager)
                await db.flush()

            draft = Draft(
                name="Test Draft",
                manager_id=manager.id,
                draft_type=draft_type,
                status=status,
                current_pick_index=current_pick_index,
                current_pick_started_at=(
                    utcnow() - timedelta(seconds=started_seconds_ago) if status == "in_progress" else None
                ),
                time_limit_seconds=time_limit_seconds,
            )
            db.add(draft)
            await db.flush()

            caps = [
                Captain(id=uuid.uuid4(), draft_id=draft.id, name=f"Captain {i + 1}", draft_position=i + 1)
                for i in range(captains)
            ]
            pool = [Player(id=uuid.uuid4(), draft_id=draft.id, name=f"Player {i + 1}") for i in range(players)]
            db.add_all(caps + pool)
            await db.commit()

            return Seeded(
                draft_id=draft.id,
                manager_id=manager.id,
                captains=[(c.id, c.access_token) for c in caps],
                players=[p.id for p in pool],
            )


class Seeded:
    def __init__(
        self,
        *,
        draft_id: uuid.UUID,
        manager_id: uuid.UUID,
        captains: list[tuple[uuid.UUID, str]],
        players: list[uuid.UUID],
    ) -> None:
        self.draft_id = draft_id
        self.manager_id = manager_id
        self.captains = captains
        self.players = players

    def captain_id(self, i: int) -> uuid.UUID:
        return self.captains[i][0]

    def token(self, i: int) -> str:
        return self.captains[i][1]


@pytest.fixture
def factory() -> DraftFactory:
    return DraftFactory()


async def fetch_draft(draft_id: uuid.UUID) -> Draft:
    async with SessionLocal() as db:
        return (await db.execute(select(Draft).where(Draft.id == draft_id))).scalar_one()


async def fetch_player(player_id: uuid.UUID) -> Player:
    async with SessionLocal() as db:
        return (await db.execute(select(Player).where(Player.id == player_id))).scalar_one()


async def fetch_captain(captain_id: uuid.UUID) -> Captain:
    async with SessionLocal() as db:
        return (await db.execute(select(Captain).where(Captain.id == captain_id))).scalar_one()


async def fetch_picks(draft_id: uuid.UUID) -> list[DraftPick]:
    async with SessionLocal() as db:
        stmt = select(DraftPick).where(DraftPick.draft_id == draft_id).order_by(DraftPick.pick_number)
        return list((await db.execute(stmt)).scalars().all())


async def fetch_queue(captain_id: uuid.UUID) -> list[QueueEntry]:
    async with SessionLocal() as db:
        stmt = select(QueueEntry).where(QueueEntry.captain_id == captain_id).order_by(QueueEntry.position)
        return list((await db.execute(stmt)).scalars().all())


async def seed_queue(captain_id: uuid.UUID, player_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    async with SessionLocal() as db:
        entries = [
            QueueEntry(id=uuid.uuid4(), captain_id=captain_id, player_id=pid, position=pos)
            for pos, pid in enumerate(player_ids)
        ]
        db.add_all(entries)
        await db.commit()
        return [e.id for e in entries]


async def seed_pick(
    draft_id: uuid.UUID, captain_id: uuid.UUID, player_id: uuid.UUID, pick_number: int, *, advance: bool = True
) -> None:
    """A pick as a completed make-pick would leave it. advance=False leaves the pointer alone."""
    async with SessionLocal() as db:
        db.add(
            DraftPick(
                id=uuid.uuid4(),
                draft_id=draft_id,
                captain_id=captain_id,
                player_id=player_id,
                pick_number=pick_number,
            )
        )
        player = (await db.execute(select(Player).where(Player.id == player_id))).scalar_one()
        player.drafted_by_captain_id = captain_id
        player.draft_pick_number = pick_number
        if advance:
            draft = (await db.execute(select(Draft).where(Draft.id == draft_id))).scalar_one()
            draft.current_pick_index = pick_number
        await db.commit()
