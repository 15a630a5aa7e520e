from __future__ import annotations

import logging

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Captain, Draft, DraftPick, Player, QueueEntry, User
from draft_api.schemas.picks import RestartDraftRequest, SuccessOut
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import require_manager
from draft_api.services.compensation import restore_picks, restore_players, snapshot_pick
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import load_draft
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.restart")


async def _clear_captain_state(db: AsyncSession, draft: Draft) -> None:
    """Empty every queue and turn auto mode off. Best-effort: neither matters for correctness."""
    captain_ids = [c.id for c in draft.captains]
    if not captain_ids:
        return
    try:
        await execute_step(
            db,
            delete(QueueEntry)
            .where(QueueEntry.captain_id.in_(captain_ids))
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.error("Failed to clear queues draft_id=%s", draft.id, exc_info=True)
    try:
        await execute_step(
            db,
            update(Captain)
            .where(Captain.draft_id == draft.id)
            .values(auto_pick_enabled=False, consecutive_timeout_picks=0)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.error("Failed to reset auto-pick flags draft_id=%s", draft.id, exc_info=True)


async def restart_draft(db: AsyncSession, req: RestartDraftRequest, *, user: User, emit: AuditSink) -> SuccessOut:
    """
    Wipe every pick and send a paused draft back to not_started.

    Deleting picks is not reversible from nothing, so picks and drafted players are
    snapshotted first and replayed if a later step fails.
    """
    draft = await load_draft(db, req.draft_id)
    actor = require_manager(draft, user)

    if draft.status != "paused":
        raise DraftError("Draft must be paused to restart")

    picks = (await db.execute(select(DraftPick).where(DraftPick.draft_id == draft.id))).scalars().all()
    pick_snapshots = [snapshot_pick(p) for p in picks]
    player_snapshots = [
        {"id": pid, "drafted_by_captain_id": cid, "draft_pick_number": num}
        for pid, cid, num in (
            await db.execute(
                select(Player.id, Player.drafted_by_captain_id, Player.draft_pick_number).where(
                    Player.draft_id == draft.id, Player.drafted_by_captain_id.is_not(None)
                )
            )
        ).all()
    ]
    db.expunge_all()

    try:
        await execute_step(
            db,
            delete(DraftPick).where(DraftPick.draft_id == draft.id).execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to delete draft picks draft_id=%s", draft.id, exc_info=True)
        raise DraftError("Failed to restart draft", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    try:
        await execute_step(
            db,
            update(Player)
            .where(Player.draft_id == draft.id)
            .values(drafted_by_captain_id=None, draft_pick_number=None)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to reset players, rolling back picks draft_id=%s", draft.id, exc_info=True)
        await restore_picks(db, pick_snapshots)
        raise DraftError("Failed to reset players", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    await _clear_captain_state(db, draft)

    failure: DraftError | None = None
    try:
        result = await execute_step(
            db,
            update(Draft)
            .where(Draft.id == draft.id, Draft.status == "paused")
            .values(status="not_started", current_pick_index=0, current_pick_started_at=None)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            logger.warning("Draft left paused during restart draft_id=%s", draft.id)
            failure = DraftError("Draft state changed concurrently. Please try again.", status.HTTP_409_CONFLICT)
    except SQLAlchemyError:
        logger.error("Failed to update draft, rolling back draft_id=%s", draft.id, exc_info=True)
        failure = DraftError("Failed to update draft", status.HTTP_500_INTERNAL_SERVER_ERROR)

    if failure is not None:
        await restore_players(db, player_snapshots)
        await restore_picks(db, pick_snapshots)
        raise failure

    logger.info("Draft restarted draft_id=%s picks_removed=%s", draft.id, len(pick_snapshots))
    emit(
        AuditEntry(
            action="draft_restarted",
            draft_id=draft.id,
            actor=actor,
            metadata={"picksRemoved": len(pick_snapshots)},
        )
    )
    return SuccessOut()
