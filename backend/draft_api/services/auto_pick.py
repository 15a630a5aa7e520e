"""
Picks made on a captain's behalf.

Two triggers reach the same code: the captain has auto mode on (pick immediately), or the
turn timer ran out (pick once the server agrees it ran out). Several observers usually fire
the timeout at once, so losing the race is reported as a soft error, not a 4xx.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Sequence

from fastapi import status
from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.config import settings
from draft_api.models import Captain, Draft, Player, QueueEntry
from draft_api.schemas.picks import AutoPickRequest, AutoPickResult, PickSummary, SoftErrorOut
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import Actor, authenticate_user, require_manager, tokens_match
from draft_api.services.clock import seconds_since
from draft_api.services.draft_order import available_players
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import PICK_ALREADY_MADE, expected_captain, load_draft, record_pick
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.auto_pick")


def choose_player(
    queued_player_ids: Sequence[uuid.UUID],
    available: Sequence[Player],
    rng: random.Random | None = None,
) -> tuple[Player, bool]:
    """
    First queued player still available, else a uniformly random available player.
    Returns (player, from_queue). Stale queue entries are skipped, not an error.
    """
    by_id = {p.id: p for p in available}
    for player_id in queued_player_ids:
        player = by_id.get(player_id)
        if player is not None:
            return player, True
    return (rng or random).choice(list(available)), False


async def _authorize(
    db: AsyncSession,
    draft: Draft,
    current: Captain | None,
    *,
    captain_token: str | None,
    scheduler_secret: str | None,
    authorization: str | None,
) -> Actor:
    if scheduler_secret is not None:
        if settings.auto_pick_secret and tokens_match(settings.auto_pick_secret, scheduler_secret):
            return Actor("system")
        raise DraftError("Invalid scheduler secret", status.HTTP_403_FORBIDDEN)

    if captain_token:
        if current is not None and tokens_match(current.access_token, captain_token):
            return Actor("captain", str(current.id))
        # A real captain of this draft, just not the one on the clock.
        if any(tokens_match(c.access_token, captain_token) for c in draft.captains):
            raise DraftError("Not your turn to pick")
        raise DraftError("Invalid captain token", status.HTTP_403_FORBIDDEN)

    user = await authenticate_user(db, authorization)
    return require_manager(draft, user)


async def _queued_player_ids(db: AsyncSession, captain_id: uuid.UUID) -> list[uuid.UUID]:
    stmt = select(QueueEntry.player_id).where(QueueEntry.captain_id == captain_id).order_by(QueueEntry.position.asc())
    return list((await db.execute(stmt)).scalars().all())


async def record_timeout(db: AsyncSession, captain_id: uuid.UUID) -> None:
    """
    Count a timer-expiry pick against the captain; enough in a row switches them to auto mode.
    Best-effort: the pick itself already succeeded.
    """
    streak = Captain.consecutive_timeout_picks + 1
    try:
        await execute_step(
            db,
            update(Captain)
            .where(Captain.id == captain_id)
            .values(
                consecutive_timeout_picks=streak,
                auto_pick_enabled=case(
                    (streak >= settings.consecutive_timeouts_before_auto, True),
                    else_=Captain.auto_pick_enabled,
                ),
            )
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError:
        logger.error("Failed to record timeout streak captain_id=%s", captain_id, exc_info=True)


async def auto_pick(
    db: AsyncSession,
    req: AutoPickRequest,
    *,
    authorization: str | None,
    scheduler_secret: str | None,
    emit: AuditSink,
) -> AutoPickResult | SoftErrorOut:
    logger.info("[auto-pick] Request draft_id=%s expected_pick_index=%s", req.draft_id, req.expected_pick_index)

    draft = await load_draft(db, req.draft_id, with_players=True)
    current = expected_captain(draft)
    actor = await _authorize(
        db,
        draft,
        current,
        captain_token=req.captain_token,
        scheduler_secret=scheduler_secret,
        authorization=authorization,
    )

    if draft.status != "in_progress":
        logger.info("[auto-pick] Draft not in progress draft_id=%s status=%s", draft.id, draft.status)
        raise DraftError("Draft is not in progress")

    if req.expected_pick_index is not None and req.expected_pick_index != draft.current_pick_index:
        logger.info(
            "[auto-pick] Pick index mismatch: expected %s, actual %s",
            req.expected_pick_index,
            draft.current_pick_index,
        )
        return SoftErrorOut(
            error=PICK_ALREADY_MADE,
            expected_pick_index=req.expected_pick_index,
            actual_pick_index=draft.current_pick_index,
        )

    if current is None:
        raise DraftError("Draft has no captains")

    timed_out = not current.auto_pick_enabled
    if timed_out and draft.current_pick_started_at is not None:
        elapsed = seconds_since(draft.current_pick_started_at)
        required = draft.time_limit_seconds - settings.auto_pick_grace_seconds
        if elapsed < required:
            logger.info("[auto-pick] Timer not expired: %.1fs elapsed, need %ss", elapsed, required)
            return SoftErrorOut(error="Timer has not expired yet", elapsed=round(elapsed), required=required)

    available = available_players(draft.players, draft.captains)
    if not available:
        raise DraftError("No available players")

    player, from_queue = choose_player(await _queued_player_ids(db, current.id), available)
    logger.info(
        "[auto-pick] Selected %s: %s for captain %s",
        "from queue" if from_queue else "random",
        player.name,
        current.name,
    )

    outcome = await record_pick(db, draft, current, player, is_auto_pick=True, log=logger)
    if isinstance(outcome, SoftErrorOut):
        return outcome

    if timed_out:
        await record_timeout(db, current.id)

    emit(
        AuditEntry(
            action="auto_pick_made",
            draft_id=draft.id,
            actor=actor,
            metadata={
                "pickNumber": outcome.pick_number,
                "playerId": player.id,
                "playerName": player.name,
                "captainId": current.id,
                "captainName": current.name,
                "isComplete": outcome.is_complete,
                "fromQueue": from_queue,
                "timedOut": timed_out,
            },
        )
    )

    return AutoPickResult(
        pick=PickSummary(player=player.name, captain=current.name, pick_number=outcome.pick_number),
        is_complete=outcome.is_complete,
        from_queue=from_queue,
    )
