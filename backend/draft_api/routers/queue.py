from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from draft_api.config import settings
from draft_api.database import get_db
from draft_api.routers.common import get_audit_sink, parse_uuid_ref
from draft_api.schemas.picks import SoftErrorOut, SuccessOut
from draft_api.schemas.queue import ManageQueueRequest, QueueAddResult, QueueEntryOut
from draft_api.services.audit import AuditSink
from draft_api.services.queue import get_queue, manage_queue
from draft_api.services.rate_limit import rate_limit

router = APIRouter(tags=["queue"])


@router.post(
    "/queue",
    response_model=SoftErrorOut | QueueAddResult | SuccessOut,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limit("manage-queue", settings.rate_limit_queue))],
)
async def manage_queue_endpoint(
    payload: ManageQueueRequest = Body(...),
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
    emit: AuditSink = Depends(get_audit_sink),
) -> SoftErrorOut | QueueAddResult | SuccessOut:
    return await manage_queue(db, payload, authorization=authorization, emit=emit)


@router.get("/drafts/{draft_ref}/queue/{captain_ref}", response_model=list[QueueEntryOut])
async def get_queue_endpoint(
    draft_ref: str,
    captain_ref: str,
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
    x_captain_token: str | None = Header(default=None),
) -> list[QueueEntryOut]:
    return await get_queue(
        db,
        parse_uuid_ref(draft_ref, "draft"),
        parse_uuid_ref(captain_ref, "captain"),
        captain_token=x_captain_token,
        authorization=authorization,
    )
