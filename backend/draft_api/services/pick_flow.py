"""
The write protocol shared by manual and automatic picks.

    insert pick -> mark player drafted -> purge queues -> advance (or complete) the draft

Each step commits on its own. The pick insert is guarded by the unique (draft_id, pick_number)
constraint and the advance by a compare-and-swap on current_pick_index; losing either race is
an expected outcome, and any failure after the insert is compensated before returning.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from fastapi import status
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from draft_api.models import Captain, Draft, DraftPick, Player, QueueEntry
from draft_api.schemas.picks import SoftErrorOut
from draft_api.services.clock import utcnow
from draft_api.services.compensation import rollback_pick
from draft_api.services.draft_order import captain_at_pick, linked_player_ids
from draft_api.services.errors import DraftError
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.picks")

PICK_ALREADY_MADE = "Pick already made"


@dataclass(frozen=True)
class RecordedPick:
    pick_number: int
    is_complete: bool


async def load_draft(db: AsyncSession, draft_id: uuid.UUID, *, with_players: bool = False) -> Draft:
    """
    Read the draft (plus captains, optionally players) and detach it from the session.

    Detached rows keep their loaded values through the rollbacks that a failed step issues,
    so the protocol can keep using what it read at the start of the request.
    """
    options = [selectinload(Draft.captains)]
    if with_players:
        options.append(selectinload(Draft.players))
    draft = (await db.execute(select(Draft).where(Draft.id == draft_id).options(*options))).scalar_one_or_none()
    if not draft:
        raise DraftError("Draft not found", status.HTTP_404_NOT_FOUND)
    db.expunge_all()
    return draft


async def load_player(db: AsyncSession, draft_id: uuid.UUID, player_id: uuid.UUID) -> Player | None:
    player = (
        await db.execute(select(Player).where(Player.id == player_id, Player.draft_id == draft_id))
    ).scalar_one_or_none()
    if player is not None:
        db.expunge(player)
    return player


def expected_captain(draft: Draft) -> Captain | None:
    return captain_at_pick(draft.captains, draft.current_pick_index, draft.draft_type)


def verify_turn(draft: Draft, captain_id: uuid.UUID) -> Captain:
    captain = expected_captain(draft)
    if captain is None or captain.id != captain_id:
        raise DraftError("Not your turn to pick")
    return captain


async def count_available(db: AsyncSession, draft_id: uuid.UUID, captains: list[Captain]) -> int:
    # Same rule as draft_order.available_players, evaluated in SQL.
    stmt = select(func.count(Player.id)).where(Player.draft_id == draft_id, Player.drafted_by_captain_id.is_(None))
    linked = linked_player_ids(captains)
    if linked:
        stmt = stmt.where(Player.id.not_in(list(linked)))
    return int((await db.execute(stmt)).scalar_one())


async def insert_pick(
    db: AsyncSession,
    *,
    draft_id: uuid.UUID,
    captain_id: uuid.UUID,
    player_id: uuid.UUID,
    pick_number: int,
    is_auto_pick: bool,
) -> bool:
    """False when another writer already holds this pick number (or this player)."""
    try:
        await execute_step(
            db,
            insert(DraftPick).values(
                id=uuid.uuid4(),
                draft_id=draft_id,
                captain_id=captain_id,
                player_id=player_id,
                pick_number=pick_number,
                is_auto_pick=is_auto_pick,
            ),
        )
    except IntegrityError:
        return False
    return True


async def mark_player_drafted(db: AsyncSession, player_id: uuid.UUID, captain_id: uuid.UUID, pick_number: int) -> None:
    await execute_step(
        db,
        update(Player)
        .where(Player.id == player_id)
        .values(drafted_by_captain_id=captain_id, draft_pick_number=pick_number)
        .execution_options(synchronize_session=False),
    )


async def purge_player_from_queues(db: AsyncSession, player_id: uuid.UUID) -> None:
    """Drop the player from every captain's queue. Losing a queue entry is harmless, so failures are only logged."""
    try:
        await execute_step(
            db,
            delete(QueueEntry).where(QueueEntry.player_id == player_id).execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.error("Queue cleanup failed player_id=%s", player_id, exc_info=True)


async def advance_draft(db: AsyncSession, draft_id: uuid.UUID, expected_index: int, *, is_complete: bool) -> bool:
    """
    Move the turn pointer forward, or finish the draft, only if nobody else moved it first.

    Returns False when zero rows matched: the index changed or the draft left in_progress
    (e.g. a concurrent pause) since we read it.
    """
    if is_complete:
        values = {"status": "completed", "current_pick_started_at": None}
    else:
        values = {"current_pick_index": expected_index + 1, "current_pick_started_at": utcnow()}
    result = await execute_step(
        db,
        update(Draft)
        .where(
            Draft.id == draft_id,
            Draft.current_pick_index == expected_index,
            Draft.status == "in_progress",
        )
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def record_pick(
    db: AsyncSession,
    draft: Draft,
    captain: Captain,
    player: Player,
    *,
    is_auto_pick: bool,
    log: logging.Logger = logger,
) -> RecordedPick | SoftErrorOut:
    expected_index = draft.current_pick_index
    pick_number = expected_index + 1

    try:
        inserted = await insert_pick(
            db,
            draft_id=draft.id,
            captain_id=captain.id,
            player_id=player.id,
            pick_number=pick_number,
            is_auto_pick=is_auto_pick,
        )
    except SQLAlchemyError as e:
        log.error("Failed to insert pick draft_id=%s pick_number=%s", draft.id, pick_number, exc_info=True)
        raise DraftError("Failed to record pick", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    if not inserted:
        log.info("Duplicate pick detected draft_id=%s pick_number=%s", draft.id, pick_number)
        return SoftErrorOut(error=PICK_ALREADY_MADE, pick_number=pick_number)

    try:
        await mark_player_drafted(db, player.id, captain.id, pick_number)
    except SQLAlchemyError as e:
        log.error("Failed to update player, rolling back pick draft_id=%s player_id=%s", draft.id, player.id, exc_info=True)
        await rollback_pick(db, draft.id, pick_number, player.id, reset_player=False)
        raise DraftError("Failed to update player", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    await purge_player_from_queues(db, player.id)

    try:
        remaining = await count_available(db, draft.id, draft.captains)
        is_complete = remaining <= 0
        advanced = await advance_draft(db, draft.id, expected_index, is_complete=is_complete)
    except SQLAlchemyError as e:
        log.error("Failed to update draft, rolling back draft_id=%s pick_number=%s", draft.id, pick_number, exc_info=True)
        await rollback_pick(db, draft.id, pick_number, player.id, reset_player=True)
        raise DraftError("Failed to update draft", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    if not advanced:
        log.warning(
            "Optimistic lock failed: current_pick_index changed since read draft_id=%s expected=%s",
            draft.id,
            expected_index,
        )
        await rollback_pick(db, draft.id, pick_number, player.id, reset_player=True)
        raise DraftError("Draft state changed concurrently. Please try again.", status.HTTP_409_CONFLICT)

    return RecordedPick(pick_number=pick_number, is_complete=is_complete)
