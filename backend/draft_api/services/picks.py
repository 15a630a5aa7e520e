from __future__ import annotations

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Captain
from draft_api.schemas.picks import MakePickRequest, PickResult, PickSummary, SoftErrorOut
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import authorize_captain_or_manager
from draft_api.services.draft_order import linked_player_ids
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import PICK_ALREADY_MADE, load_draft, load_player, record_pick, verify_turn
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.picks")


async def reset_timeout_streak(db: AsyncSession, captain_id: uuid.UUID) -> None:
    try:
        await execute_step(
            db,
            update(Captain)
            .where(Captain.id == captain_id)
            .values(consecutive_timeout_picks=0)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.error("Failed to reset timeout streak captain_id=%s", captain_id, exc_info=True)


async def make_pick(
    db: AsyncSession,
    req: MakePickRequest,
    *,
    authorization: str | None,
    emit: AuditSink,
) -> PickResult | SoftErrorOut:
    draft = await load_draft(db, req.draft_id)
    actor = await authorize_captain_or_manager(
        db,
        draft,
        captain_id=req.captain_id,
        captain_token=req.captain_token,
        authorization=authorization,
    )

    player = await load_player(db, draft.id, req.player_id)

    # A replayed request for a pick that already landed (possibly the pick that completed the draft).
    if player is not None and player.drafted_by_captain_id == req.captain_id:
        logger.info("Replayed pick draft_id=%s player_id=%s", draft.id, player.id)
        return SoftErrorOut(error=PICK_ALREADY_MADE, pick_number=player.draft_pick_number)

    if draft.status != "in_progress":
        raise DraftError("Draft is not in progress")
    if player is None:
        raise DraftError("Player not available")

    captain = verify_turn(draft, req.captain_id)

    if player.drafted_by_captain_id is not None:
        raise DraftError("Player not available")
    if player.id in linked_player_ids(draft.captains):
        raise DraftError("Cannot draft a captain")

    outcome = await record_pick(db, draft, captain, player, is_auto_pick=False, log=logger)
    if isinstance(outcome, SoftErrorOut):
        return outcome

    if captain.consecutive_timeout_picks:
        await reset_timeout_streak(db, captain.id)

    emit(
        AuditEntry(
            action="pick_made",
            draft_id=draft.id,
            actor=actor,
            metadata={
                "pickNumber": outcome.pick_number,
                "playerId": player.id,
                "playerName": player.name,
                "captainId": captain.id,
                "captainName": captain.name,
                "isComplete": outcome.is_complete,
            },
        )
    )

    return PickResult(
        pick=PickSummary(player=player.name, captain=captain.name, pick_number=outcome.pick_number),
        is_complete=outcome.is_complete,
    )

