"""
Draft status transitions that don't touch picks.

    not_started -> in_progress -> paused <-> in_progress
                               -> completed (terminal, only via the final pick)
    paused -> not_started only through restart.

Each transition is a conditional update on the status we expect to leave, so two managers
clicking "start" at once can't both succeed.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from fastapi import status
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Draft, User
from draft_api.models.draft import DRAFT_TYPES
from draft_api.schemas.draft import DraftStatusOut
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import require_manager
from draft_api.services.clock import utcnow
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import count_available, load_draft
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.lifecycle")

MIN_CAPTAINS = 2


def _check_draft_positions(draft: Draft) -> None:
    positions = sorted(c.draft_position for c in draft.captains)
    if positions != list(range(positions[0], positions[0] + len(positions))):
        raise DraftError("Draft positions must be unique and contiguous")


async def _transition(
    db: AsyncSession,
    draft: Draft,
    *,
    from_status: str,
    to_status: str,
    started_at: datetime | None,
    reset_index: bool = False,
) -> int:
    values: dict[str, object] = {"status": to_status, "current_pick_started_at": started_at}
    if reset_index:
        values["current_pick_index"] = 0
    result = await execute_step(
        db,
        update(Draft)
        .where(Draft.id == draft.id, Draft.status == from_status)
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        raise DraftError("Draft state changed concurrently. Please try again.", status.HTTP_409_CONFLICT)
    return 0 if reset_index else draft.current_pick_index


async def start_draft(db: AsyncSession, draft_id: uuid.UUID, *, user: User, emit: AuditSink) -> DraftStatusOut:
    draft = await load_draft(db, draft_id)
    actor = require_manager(draft, user)

    if draft.status != "not_started":
        raise DraftError("Draft has already started")
    if draft.draft_type not in DRAFT_TYPES:
        raise DraftError(f"Unknown draft type: {draft.draft_type}")
    if len(draft.captains) < MIN_CAPTAINS:
        raise DraftError(f"At least {MIN_CAPTAINS} captains are required to start")
    _check_draft_positions(draft)
    available = await count_available(db, draft.id, draft.captains)
    if available < len(draft.captains):
        raise DraftError("Not enough available players to start")

    index = await _transition(
        db, draft, from_status="not_started", to_status="in_progress", started_at=utcnow(), reset_index=True
    )
    logger.info("Draft started draft_id=%s captains=%s players=%s", draft.id, len(draft.captains), available)
    emit(AuditEntry(action="draft_started", draft_id=draft.id, actor=actor, metadata={"availablePlayers": available}))
    return DraftStatusOut(status="in_progress", current_pick_index=index)


async def pause_draft(db: AsyncSession, draft_id: uuid.UUID, *, user: User, emit: AuditSink) -> DraftStatusOut:
    draft = await load_draft(db, draft_id)
    actor = require_manager(draft, user)
    if draft.status != "in_progress":
        raise DraftError("Draft is not in progress")

    index = await _transition(db, draft, from_status="in_progress", to_status="paused", started_at=None)
    emit(AuditEntry(action="draft_paused", draft_id=draft.id, actor=actor, metadata={"pickIndex": index}))
    return DraftStatusOut(status="paused", current_pick_index=index)


async def resume_draft(db: AsyncSession, draft_id: uuid.UUID, *, user: User, emit: AuditSink) -> DraftStatusOut:
    draft = await load_draft(db, draft_id)
    actor = require_manager(draft, user)
    if draft.status != "paused":
        raise DraftError("Draft is not paused")

    # The paused turn gets a fresh clock.
    index = await _transition(db, draft, from_status="paused", to_status="in_progress", started_at=utcnow())
    emit(AuditEntry(action="draft_resumed", draft_id=draft.id, actor=actor, metadata={"pickIndex": index}))
    return DraftStatusOut(status="in_progress", current_pick_index=index)
