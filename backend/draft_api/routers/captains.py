from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.config import settings
from draft_api.database import get_db
from draft_api.routers.common import get_audit_sink
from draft_api.schemas.draft import ToggleAutoPickRequest, ToggleAutoPickResult
from draft_api.services.audit import AuditSink
from draft_api.services.captains import toggle_auto_pick
from draft_api.services.rate_limit import rate_limit

router = APIRouter(prefix="/captains", tags=["captains"])


@router.post(
    "/auto-pick",
    response_model=ToggleAutoPickResult,
    dependencies=[Depends(rate_limit("toggle-auto-pick", settings.rate_limit_toggle_auto_pick))],
)
async def toggle_auto_pick_endpoint(
    payload: ToggleAutoPickRequest,
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
    emit: AuditSink = Depends(get_audit_sink),
) -> ToggleAutoPickResult:
    return await toggle_auto_pick(db, payload, authorization=authorization, emit=emit)
