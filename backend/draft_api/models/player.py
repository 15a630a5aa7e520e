from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draft_api.models.base import Base


class Player(Base):
    __tablename__ = "players"
    __table_args__ = (
        # Drafted-by and pick number are set together or cleared together.
        CheckConstraint(
            "(drafted_by_captain_id IS NULL) = (draft_pick_number IS NULL)", name="ck_players_drafted_pair"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    draft_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("drafts.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(140), nullable=False, index=True)

    drafted_by_captain_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("captains.id"), nullable=True, index=True
    )
    draft_pick_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    draft: Mapped["Draft"] = relationship("Draft", back_populates="players")
