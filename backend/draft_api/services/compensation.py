"""
Inverse steps for partially-applied mutations.

Every function here is best-effort and never raises: if compensation itself fails the draft
has drifted and needs a human, so we log CRITICAL with enough keys to reconcile by hand and
let the caller return its original error.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import DraftPick, Player
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.compensation")

PICK_SNAPSHOT_FIELDS = ("id", "draft_id", "captain_id", "player_id", "pick_number", "is_auto_pick", "picked_at")


def snapshot_pick(pick: DraftPick) -> dict[str, Any]:
    return {name: getattr(pick, name) for name in PICK_SNAPSHOT_FIELDS}


async def rollback_pick(
    db: AsyncSession,
    draft_id: uuid.UUID,
    pick_number: int,
    player_id: uuid.UUID,
    *,
    reset_player: bool,
) -> None:
    """Delete a just-recorded pick and, if it got that far, put the player back in the pool."""
    try:
        await execute_step(
            db,
            delete(DraftPick)
            .where(DraftPick.draft_id == draft_id, DraftPick.pick_number == pick_number)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.critical(
            "CRITICAL: Rollback failed (delete pick) draft_id=%s pick_number=%s",
            draft_id,
            pick_number,
            exc_info=True,
        )
    if reset_player:
        await restore_player(db, player_id, captain_id=None, pick_number=None)


async def restore_player(
    db: AsyncSession,
    player_id: uuid.UUID,
    *,
    captain_id: uuid.UUID | None,
    pick_number: int | None,
) -> None:
    try:
        await execute_step(
            db,
            update(Player)
            .where(Player.id == player_id)
            .values(drafted_by_captain_id=captain_id, draft_pick_number=pick_number)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.critical(
            "CRITICAL: Rollback failed (restore player) player_id=%s captain_id=%s pick_number=%s",
            player_id,
            captain_id,
            pick_number,
            exc_info=True,
        )


async def restore_picks(db: AsyncSession, snapshots: Sequence[dict[str, Any]]) -> None:
    """Re-insert previously deleted pick rows with their original ids and timestamps."""
    if not snapshots:
        return
    try:
        await execute_step(db, insert(DraftPick).values([dict(s) for s in snapshots]))
    except SQLAlchemyError:
        logger.critical(
            "CRITICAL: Rollback failed (re-insert picks) draft_id=%s pick_numbers=%s",
            snapshots[0].get("draft_id"),
            [s.get("pick_number") for s in snapshots],
            exc_info=True,
        )


async def restore_players(db: AsyncSession, snapshots: Sequence[dict[str, Any]]) -> None:
    """snapshots: {"id", "drafted_by_captain_id", "draft_pick_number"} as captured before the reset."""
    for s in snapshots:
        await restore_player(
            db,
            s["id"],
            captain_id=s["drafted_by_captain_id"],
            pick_number=s["draft_pick_number"],
        )
