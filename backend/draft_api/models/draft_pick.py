from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draft_api.models.base import Base


class DraftPick(Base):
    __tablename__ = "draft_picks"
    __table_args__ = (
        # First writer for a pick number wins; every other concurrent insert gets an IntegrityError.
        UniqueConstraint("draft_id", "pick_number", name="uq_draft_picks_draft_pick_number"),
        UniqueConstraint("draft_id", "player_id", name="uq_draft_picks_draft_player"),
        CheckConstraint("pick_number >= 1", name="ck_draft_picks_pick_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    draft_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("drafts.id"), nullable=False, index=True)
    captain_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("captains.id"), nullable=False, index=True)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False, index=True)

    # 1-based.
    pick_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    is_auto_pick: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    picked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    draft: Mapped["Draft"] = relationship("Draft", back_populates="picks")
