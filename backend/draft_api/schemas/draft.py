from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from draft_api.schemas.base import CanonicalUUID, ORMBaseModel, RequestModel


class CaptainOut(ORMBaseModel):
    # access_token is deliberately not part of this model.
    id: uuid.UUID
    name: str
    draft_position: int
    player_id: uuid.UUID | None = None
    auto_pick_enabled: bool
    consecutive_timeout_picks: int
    team_name: str | None = None
    team_color: str | None = None


class PlayerOut(ORMBaseModel):
    id: uuid.UUID
    name: str
    drafted_by_captain_id: uuid.UUID | None = None
    draft_pick_number: int | None = None


class DraftPickOut(ORMBaseModel):
    id: uuid.UUID
    captain_id: uuid.UUID
    player_id: uuid.UUID
    pick_number: int
    is_auto_pick: bool
    picked_at: datetime | None = None


class DraftOut(ORMBaseModel):
    id: uuid.UUID
    name: str
    manager_id: uuid.UUID
    draft_type: str
    status: str
    current_pick_index: int
    current_pick_started_at: datetime | None = None
    time_limit_seconds: int

    captains: list[CaptainOut] = Field(default_factory=list)
    players: list[PlayerOut] = Field(default_factory=list)
    picks: list[DraftPickOut] = Field(default_factory=list)

    # Derived, not stored.
    current_captain_id: uuid.UUID | None = None
    pick_order: list[uuid.UUID] = Field(default_factory=list)


class DraftStatusOut(BaseModel):
    success: bool = True
    status: str
    current_pick_index: int


class ToggleAutoPickRequest(RequestModel):
    draft_id: CanonicalUUID
    captain_id: CanonicalUUID
    enabled: bool
    captain_token: str | None = Field(default=None, min_length=1, max_length=128)


class ToggleAutoPickResult(BaseModel):
    success: bool = True
    captain_id: uuid.UUID
    auto_pick_enabled: bool
