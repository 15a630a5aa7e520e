from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from draft_api.config import settings
from draft_api.database import get_db
from draft_api.models import Draft, User
from draft_api.routers.common import get_audit_sink, parse_uuid_ref
from draft_api.schemas.draft import DraftOut, DraftStatusOut
from draft_api.schemas.picks import RestartDraftRequest, SuccessOut
from draft_api.services.audit import AuditSink
from draft_api.services.auth import get_current_user
from draft_api.services.draft_order import available_players, captain_at_pick, pick_order
from draft_api.services.lifecycle import pause_draft, resume_draft, start_draft
from draft_api.services.rate_limit import rate_limit
from draft_api.services.restart import restart_draft

router = APIRouter(prefix="/drafts", tags=["drafts"])

_lifecycle_limit = [Depends(rate_limit("lifecycle", settings.rate_limit_lifecycle))]


@router.post(
    "/restart",
    response_model=SuccessOut,
    dependencies=[Depends(rate_limit("restart-draft", settings.rate_limit_restart))],
)
async def restart_draft_endpoint(
    payload: RestartDraftRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    emit: AuditSink = Depends(get_audit_sink),
) -> SuccessOut:
    return await restart_draft(db, payload, user=user, emit=emit)


@router.get("/{draft_ref}", response_model=DraftOut)
async def get_draft(draft_ref: str, db: AsyncSession = Depends(get_db)) -> DraftOut:
    """Board state for managers, captains and spectators. Captain secrets are never included."""
    draft_id = parse_uuid_ref(draft_ref, "draft")
    stmt = (
        select(Draft)
        .where(Draft.id == draft_id)
        .options(selectinload(Draft.captains), selectinload(Draft.players), selectinload(Draft.picks))
    )
    draft = (await db.execute(stmt)).scalar_one_or_none()
    if not draft:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Draft not found")

    # Total picks = picks already made + players still available, so the preview covers the whole draft.
    total_picks = len(available_players(draft.players, draft.captains)) + len(draft.picks)
    out = DraftOut.model_validate(draft)
    out.pick_order = [c.id for c in pick_order(draft.captains, total_picks, draft.draft_type)]
    if draft.status in ("in_progress", "paused"):
        current = captain_at_pick(draft.captains, draft.current_pick_index, draft.draft_type)
        out.current_captain_id = current.id if current else None
    return out


@router.post("/{draft_ref}/start", response_model=DraftStatusOut, dependencies=_lifecycle_limit)
async def start_draft_endpoint(
    draft_ref: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    emit: AuditSink = Depends(get_audit_sink),
) -> DraftStatusOut:
    return await start_draft(db, parse_uuid_ref(draft_ref, "draft"), user=user, emit=emit)


@router.post("/{draft_ref}/pause", response_model=DraftStatusOut, dependencies=_lifecycle_limit)
async def pause_draft_endpoint(
    draft_ref: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    emit: AuditSink = Depends(get_audit_sink),
) -> DraftStatusOut:
    return await pause_draft(db, parse_uuid_ref(draft_ref, "draft"), user=user, emit=emit)


@router.post("/{draft_ref}/resume", response_model=DraftStatusOut, dependencies=_lifecycle_limit)
async def resume_draft_endpoint(
    draft_ref: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    emit: AuditSink = Depends(get_audit_sink),
) -> DraftStatusOut:
    return await resume_draft(db, parse_uuid_ref(draft_ref, "draft"), user=user, emit=emit)
