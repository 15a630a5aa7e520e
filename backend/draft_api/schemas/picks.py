from __future__ import annotations

from pydantic import BaseModel, Field

from draft_api.schemas.base import CanonicalUUID, RequestModel


class MakePickRequest(RequestModel):
    draft_id: CanonicalUUID
    captain_id: CanonicalUUID
    player_id: CanonicalUUID
    captain_token: str | None = Field(default=None, min_length=1, max_length=128)


class AutoPickRequest(RequestModel):
    draft_id: CanonicalUUID
    # The pick index the caller believes is current. A mismatch means somebody already picked.
    expected_pick_index: int | None = Field(default=None, ge=0)
    captain_token: str | None = Field(default=None, min_length=1, max_length=128)


class UndoPickRequest(RequestModel):
    draft_id: CanonicalUUID


class RestartDraftRequest(RequestModel):
    draft_id: CanonicalUUID


class PickSummary(BaseModel):
    player: str
    captain: str
    pick_number: int


class PickResult(BaseModel):
    success: bool = True
    pick: PickSummary
    is_complete: bool


class AutoPickResult(PickResult):
    from_queue: bool


class UndoResult(BaseModel):
    success: bool = True
    undone_pick: int


class SuccessOut(BaseModel):
    success: bool = True


class SoftErrorOut(BaseModel):
    """
    HTTP 200 with an error payload: an expected race between legitimate callers.
    Safe to retry after refreshing draft state.
    """

    error: str
    pick_number: int | None = None
    expected_pick_index: int | None = None
    actual_pick_index: int | None = None
    elapsed: int | None = None
    required: int | None = None
