from __future__ import annotations

import logging

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Draft, DraftPick, Player, User
from draft_api.schemas.picks import UndoPickRequest, UndoResult
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import require_manager
from draft_api.services.clock import utcnow
from draft_api.services.compensation import restore_picks, restore_player, snapshot_pick
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import load_draft
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.undo")


async def undo_pick(db: AsyncSession, req: UndoPickRequest, *, user: User, emit: AuditSink) -> UndoResult:
    """
    Reverse the most recent pick.

    The most recent pick is numbered current_pick_index: a pick consumes number index + 1 and
    then moves the index to that number. Reading by that exact number (not "highest") means two
    concurrent undos can't both remove different picks.
    """
    draft = await load_draft(db, req.draft_id)
    actor = require_manager(draft, user)

    if draft.status not in ("in_progress", "paused"):
        raise DraftError("Draft must be in progress or paused to undo")
    if draft.current_pick_index <= 0:
        raise DraftError("No picks to undo")

    expected_index = draft.current_pick_index
    last_pick = (
        await db.execute(
            select(DraftPick).where(DraftPick.draft_id == draft.id, DraftPick.pick_number == expected_index).limit(1)
        )
    ).scalar_one_or_none()
    if last_pick is None:
        raise DraftError("No picks to undo (pick may have already been undone)", status.HTTP_409_CONFLICT)
    snapshot = snapshot_pick(last_pick)
    db.expunge(last_pick)

    try:
        deleted = await execute_step(
            db,
            delete(DraftPick).where(DraftPick.id == snapshot["id"]).execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to delete pick draft_id=%s pick_number=%s", draft.id, expected_index, exc_info=True)
        raise DraftError("Failed to undo pick", status.HTTP_500_INTERNAL_SERVER_ERROR) from e
    if deleted.rowcount == 0:
        # Another undo got there between our read and our delete.
        raise DraftError("No picks to undo (pick may have already been undone)", status.HTTP_409_CONFLICT)

    try:
        await execute_step(
            db,
            update(Player)
            .where(Player.id == snapshot["player_id"])
            .values(drafted_by_captain_id=None, draft_pick_number=None)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to reset player, rolling back player_id=%s", snapshot["player_id"], exc_info=True)
        await restore_picks(db, [snapshot])
        raise DraftError("Failed to reset player", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    failure: DraftError | None = None
    try:
        result = await execute_step(
            db,
            update(Draft)
            .where(
                Draft.id == draft.id,
                Draft.current_pick_index == expected_index,
                Draft.status == draft.status,
            )
            .values(
                current_pick_index=expected_index - 1,
                current_pick_started_at=utcnow() if draft.status == "in_progress" else None,
            )
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            logger.warning("Optimistic lock failed on undo draft_id=%s expected=%s", draft.id, expected_index)
            failure = DraftError("Draft state changed concurrently. Please try again.", status.HTTP_409_CONFLICT)
    except SQLAlchemyError:
        logger.error("Failed to update draft, rolling back draft_id=%s", draft.id, exc_info=True)
        failure = DraftError("Failed to update draft", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if failure is not None:
        await restore_picks(db, [snapshot])
        await restore_player(
            db,
            snapshot["player_id"],
            captain_id=snapshot["captain_id"],
            pick_number=snapshot["pick_number"],
        )
        raise failure

    emit(
        AuditEntry(
            action="pick_undone",
            draft_id=draft.id,
            actor=actor,
            metadata={
                "pickNumber": snapshot["pick_number"],
                "playerId": snapshot["player_id"],
                "captainId": snapshot["captain_id"],
            },
        )
    )
    return UndoResult(undone_pick=snapshot["pick_number"])
