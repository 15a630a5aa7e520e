from __future__ import annotations

import logging
import uuid

from fastapi import status
from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Captain, Draft, Player, QueueEntry
from draft_api.schemas.picks import SoftErrorOut, SuccessOut
from draft_api.schemas.queue import (
    QueueAddRequest,
    QueueAddResult,
    QueueEntryOut,
    QueueRemoveRequest,
    QueueReorderRequest,
)
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import Actor, authorize_captain_or_manager, find_captain
from draft_api.services.draft_order import is_available, linked_player_ids
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import load_draft
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.queue")

QueueRequest = QueueAddRequest | QueueRemoveRequest | QueueReorderRequest


async def _authorize(
    db: AsyncSession,
    draft_id: uuid.UUID,
    captain_id: uuid.UUID,
    captain_token: str | None,
    authorization: str | None,
) -> tuple[Draft, Captain, Actor]:
    draft = await load_draft(db, draft_id)
    captain = find_captain(draft, captain_id)
    if captain is None:
        raise DraftError("Captain not found in this draft", status.HTTP_404_NOT_FOUND)
    actor = await authorize_captain_or_manager(
        db, draft, captain_id=captain_id, captain_token=captain_token, authorization=authorization
    )
    return draft, captain, actor


async def _add(db: AsyncSession, draft: Draft, captain: Captain, req: QueueAddRequest) -> QueueAddResult | SoftErrorOut:
    player_in_draft = (
        await db.execute(select(Player.id).where(Player.id == req.player_id, Player.draft_id == draft.id))
    ).scalar_one_or_none()
    if player_in_draft is None:
        raise DraftError("Player not found in this draft", status.HTTP_404_NOT_FOUND)

    max_position = (
        await db.execute(select(func.max(QueueEntry.position)).where(QueueEntry.captain_id == captain.id))
    ).scalar_one_or_none()
    next_position = 0 if max_position is None else max_position + 1

    entry_id = uuid.uuid4()
    try:
        await execute_step(
            db,
            insert(QueueEntry).values(
                id=entry_id, captain_id=captain.id, player_id=req.player_id, position=next_position
            ),
        )
    except IntegrityError:
        return SoftErrorOut(error="Player is already in queue")
    except SQLAlchemyError as e:
        logger.error("Failed to add to queue captain_id=%s", captain.id, exc_info=True)
        raise DraftError("Failed to add to queue", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    return QueueAddResult(
        entry=QueueEntryOut(id=entry_id, captain_id=captain.id, player_id=req.player_id, position=next_position)
    )


async def _remove(db: AsyncSession, captain: Captain, req: QueueRemoveRequest) -> SuccessOut:
    try:
        result = await execute_step(
            db,
            delete(QueueEntry)
            .where(QueueEntry.id == req.queue_entry_id, QueueEntry.captain_id == captain.id)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to remove from queue entry_id=%s", req.queue_entry_id, exc_info=True)
        raise DraftError("Failed to remove from queue", status.HTTP_500_INTERNAL_SERVER_ERROR) from e
    if result.rowcount == 0:
        raise DraftError("Queue entry not found", status.HTTP_404_NOT_FOUND)
    return SuccessOut()


async def _reorder(db: AsyncSession, captain: Captain, req: QueueReorderRequest) -> SuccessOut:
    """
    Renumber the whole queue in one UPDATE inside one transaction, so readers never see two
    entries sharing a position. entry_ids must be exactly the captain's current entries.
    """
    ids = list(req.entry_ids)
    try:
        owned = set(
            (await db.execute(select(QueueEntry.id).where(QueueEntry.captain_id == captain.id))).scalars().all()
        )
        if owned != set(ids):
            await db.rollback()
            raise DraftError("One or more entry IDs do not belong to this captain")

        result = await db.execute(
            update(QueueEntry)
            .where(QueueEntry.id.in_(ids), QueueEntry.captain_id == captain.id)
            .values(position=case(*[(QueueEntry.id == eid, pos) for pos, eid in enumerate(ids)], else_=QueueEntry.position))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(ids):
            # An entry vanished (e.g. its player was just drafted). Leave the old order intact.
            await db.rollback()
            raise DraftError("Queue changed concurrently. Please try again.", status.HTTP_409_CONFLICT)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to reorder queue captain_id=%s", captain.id, exc_info=True)
        raise DraftError("Failed to reorder queue", status.HTTP_500_INTERNAL_SERVER_ERROR) from e
    return SuccessOut()


async def manage_queue(
    db: AsyncSession,
    req: QueueRequest,
    *,
    authorization: str | None,
    emit: AuditSink,
) -> QueueAddResult | SuccessOut | SoftErrorOut:
    draft, captain, actor = await _authorize(db, req.draft_id, req.captain_id, req.captain_token, authorization)

    if isinstance(req, QueueAddRequest):
        out = await _add(db, draft, captain, req)
        if isinstance(out, SoftErrorOut):
            return out
        action, metadata = "draft_queue_add", {"playerId": req.player_id, "position": out.entry.position}
    elif isinstance(req, QueueRemoveRequest):
        out = await _remove(db, captain, req)
        action, metadata = "draft_queue_remove", {"queueEntryId": req.queue_entry_id}
    else:
        out = await _reorder(db, captain, req)
        action, metadata = "draft_queue_reorder", {"entryCount": len(req.entry_ids)}

    emit(AuditEntry(action=action, draft_id=draft.id, actor=actor, metadata={"captainId": captain.id, **metadata}))
    return out


async def get_queue(
    db: AsyncSession,
    draft_id: uuid.UUID,
    captain_id: uuid.UUID,
    *,
    captain_token: str | None,
    authorization: str | None,
) -> list[QueueEntryOut]:
    """The captain's queue in order, minus players that are no longer available."""
    draft, captain, _ = await _authorize(db, draft_id, captain_id, captain_token, authorization)
    rows = (
        await db.execute(
            select(QueueEntry, Player)
            .join(Player, Player.id == QueueEntry.player_id)
            .where(QueueEntry.captain_id == captain.id)
            .order_by(QueueEntry.position.asc())
        )
    ).all()
    linked = linked_player_ids(draft.captains)
    return [QueueEntryOut.model_validate(entry) for entry, player in rows if is_available(player, linked)]
