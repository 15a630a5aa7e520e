from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.config import settings
from draft_api.database import get_db
from draft_api.models import User
from draft_api.routers.common import get_audit_sink
from draft_api.schemas.picks import (
    AutoPickRequest,
    AutoPickResult,
    MakePickRequest,
    PickResult,
    SoftErrorOut,
    UndoPickRequest,
    UndoResult,
)
from draft_api.services.audit import AuditSink
from draft_api.services.auth import get_current_user
from draft_api.services.auto_pick import auto_pick
from draft_api.services.picks import make_pick
from draft_api.services.rate_limit import rate_limit
from draft_api.services.undo import undo_pick

router = APIRouter(prefix="/picks", tags=["picks"])


# Soft errors (expected races) come back as 200 with an "error" field; callers must check the body.
@router.post(
    "/make",
    response_model=PickResult | SoftErrorOut,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("make-pick", settings.rate_limit_make_pick))],
)
async def make_pick_endpoint(
    payload: MakePickRequest,
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
    emit: AuditSink = Depends(get_audit_sink),
) -> PickResult | SoftErrorOut:
    return await make_pick(db, payload, authorization=authorization, emit=emit)


@router.post(
    "/auto",
    response_model=AutoPickResult | SoftErrorOut,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("auto-pick", settings.rate_limit_auto_pick))],
)
async def auto_pick_endpoint(
    payload: AutoPickRequest,
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
    x_auto_pick_secret: str | None = Header(default=None),
    emit: AuditSink = Depends(get_audit_sink),
) -> AutoPickResult | SoftErrorOut:
    return await auto_pick(
        db,
        payload,
        authorization=authorization,
        scheduler_secret=x_auto_pick_secret,
        emit=emit,
    )


@router.post(
    "/undo",
    response_model=UndoResult,
    dependencies=[Depends(rate_limit("undo-pick", settings.rate_limit_undo_pick))],
)
async def undo_pick_endpoint(
    payload: UndoPickRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    emit: AuditSink = Depends(get_audit_sink),
) -> UndoResult:
    return await undo_pick(db, payload, user=user, emit=emit)
