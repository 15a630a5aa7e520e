from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from draft_api.models.base import Base


class QueueEntry(Base):
    __tablename__ = "captain_draft_queues"
    __table_args__ = (UniqueConstraint("captain_id", "player_id", name="uq_captain_draft_queues_captain_player"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    captain_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("captains.id"), nullable=False, index=True)
    player_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("players.id"), nullable=False, index=True)

    # Dense, 0-based, per captain.
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    captain: Mapped["Captain"] = relationship("Captain", back_populates="queue_entries")
