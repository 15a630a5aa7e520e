from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draft_api.models.base import Base

DRAFT_TYPES = ("snake", "round_robin")
DRAFT_STATUSES = ("not_started", "in_progress", "paused", "completed")


def _one_of(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Draft(Base):
    __tablename__ = "drafts"
    __table_args__ = (
        CheckConstraint(_one_of("draft_type", DRAFT_TYPES), name="ck_drafts_draft_type"),
        CheckConstraint(_one_of("status", DRAFT_STATUSES), name="ck_drafts_status"),
        CheckConstraint("current_pick_index >= 0", name="ck_drafts_current_pick_index"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False, default="Draft")

    manager_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    draft_type: Mapped[str] = mapped_column(String(20), nullable=False, default="snake")
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="not_started", index=True)

    # 0-based turn pointer. Only ever written with a conditional update guarded by its current value.
    current_pick_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_pick_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    time_limit_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=60)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    manager: Mapped["User"] = relationship("User", back_populates="managed_drafts")
    captains: Mapped[list["Captain"]] = relationship(
        "Captain", back_populates="draft", cascade="all, delete-orphan", order_by="Captain.draft_position"
    )
    players: Mapped[list["Player"]] = relationship("Player", back_populates="draft", cascade="all, delete-orphan")
    picks: Mapped[list["DraftPick"]] = relationship(
        "DraftPick", back_populates="draft", cascade="all, delete-orphan", order_by="DraftPick.pick_number"
    )
