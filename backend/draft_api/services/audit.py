from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from fastapi import BackgroundTasks

from draft_api.database import SessionLocal
from draft_api.models import AuditLog
from draft_api.services.auth import Actor

logger = logging.getLogger("draft_api.audit")


@dataclass(frozen=True)
class AuditEntry:
    action: str
    draft_id: uuid.UUID
    actor: Actor
    metadata: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None


AuditSink = Callable[[AuditEntry], None]


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


async def write_audit(entry: AuditEntry) -> None:
    """Fire-and-forget: runs after the response is sent, and a failure here must never surface."""
    try:
        async with SessionLocal() as db:
            db.add(
                AuditLog(
                    draft_id=entry.draft_id,
                    action=entry.action,
                    actor_type=entry.actor.actor_type,
                    actor_id=entry.actor.actor_id,
                    details=_jsonable(entry.metadata),
                    ip_address=entry.ip_address,
                )
            )
            await db.commit()
    except Exception:
        logger.exception("[audit] Failed to log action=%s draft_id=%s", entry.action, entry.draft_id)


def audit_sink(background: BackgroundTasks, ip_address: str | None) -> AuditSink:
    def _emit(entry: AuditEntry) -> None:
        background.add_task(write_audit, replace(entry, ip_address=ip_address))

    return _emit
