from __future__ import annotations

import uuid

from fastapi import BackgroundTasks, HTTPException, Request, status

from draft_api.schemas.base import UUID_RE
from draft_api.services.audit import AuditSink, audit_sink
from draft_api.services.rate_limit import client_ip


def parse_uuid_ref(ref: str, label: str) -> uuid.UUID:
    """Path ids must be canonical UUIDs; anything else is rejected before touching the database."""
    if not UUID_RE.match(ref):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid {label} id")
    return uuid.UUID(ref)


def get_audit_sink(request: Request, background: BackgroundTasks) -> AuditSink:
    return audit_sink(background, client_ip(request))
