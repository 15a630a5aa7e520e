from __future__ import annotations

import secrets
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draft_api.models.base import Base


def _new_access_token() -> str:
    return secrets.token_urlsafe(32)


class Captain(Base):
    __tablename__ = "captains"
    __table_args__ = (UniqueConstraint("draft_id", "draft_position", name="uq_captains_draft_position"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    draft_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("drafts.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    draft_position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Per-captain secret shared through the captain's private link.
    access_token: Mapped[str] = mapped_column(String(64), nullable=False, default=_new_access_token)

    # A captain who is also in the player pool. That player is never draftable and does not cost a pick.
    # Plain column (no FK) so captains <-> players doesn't form a dependency cycle.
    player_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    auto_pick_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consecutive_timeout_picks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    team_name: Mapped[str | None] = mapped_column(String(80), nullable=True)
    team_color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    draft: Mapped["Draft"] = relationship("Draft", back_populates="captains")
    queue_entries: Mapped[list["QueueEntry"]] = relationship(
        "QueueEntry", back_populates="captain", cascade="all, delete-orphan", order_by="QueueEntry.position"
    )
