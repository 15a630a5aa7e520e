from __future__ import annotations

import logging

from fastapi import status
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.models import Captain
from draft_api.schemas.draft import ToggleAutoPickRequest, ToggleAutoPickResult
from draft_api.services.audit import AuditEntry, AuditSink
from draft_api.services.auth import authorize_captain_or_manager, find_captain
from draft_api.services.errors import DraftError
from draft_api.services.pick_flow import load_draft
from draft_api.services.store import execute_step

logger = logging.getLogger("draft_api.captains")


async def toggle_auto_pick(
    db: AsyncSession,
    req: ToggleAutoPickRequest,
    *,
    authorization: str | None,
    emit: AuditSink,
) -> ToggleAutoPickResult:
    draft = await load_draft(db, req.draft_id)
    if find_captain(draft, req.captain_id) is None:
        raise DraftError("Captain not found in this draft", status.HTTP_404_NOT_FOUND)
    actor = await authorize_captain_or_manager(
        db,
        draft,
        captain_id=req.captain_id,
        captain_token=req.captain_token,
        authorization=authorization,
    )

    try:
        # An explicit choice either way starts a fresh timeout streak.
        await execute_step(
            db,
            update(Captain)
            .where(Captain.id == req.captain_id)
            .values(auto_pick_enabled=req.enabled, consecutive_timeout_picks=0)
            .execution_options(synchronize_session=False),
        )
    except SQLAlchemyError as e:
        logger.error("Failed to update auto_pick_enabled captain_id=%s", req.captain_id, exc_info=True)
        raise DraftError("Failed to update setting", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    emit(
        AuditEntry(
            action="auto_pick_toggled",
            draft_id=draft.id,
            actor=actor,
            metadata={"captainId": req.captain_id, "enabled": req.enabled},
        )
    )
    return ToggleAutoPickResult(captain_id=req.captain_id, auto_pick_enabled=req.enabled)
