from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from draft_api.schemas.base import CanonicalUUID, ORMBaseModel, RequestModel


class _QueueRequestBase(RequestModel):
    draft_id: CanonicalUUID
    captain_id: CanonicalUUID
    captain_token: str | None = Field(default=None, min_length=1, max_length=128)


class QueueAddRequest(_QueueRequestBase):
    action: Literal["add"]
    player_id: CanonicalUUID


class QueueRemoveRequest(_QueueRequestBase):
    action: Literal["remove"]
    queue_entry_id: CanonicalUUID


class QueueReorderRequest(_QueueRequestBase):
    action: Literal["reorder"]
    entry_ids: list[CanonicalUUID] = Field(min_length=1)

    @field_validator("entry_ids")
    @classmethod
    def _no_duplicates(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        if len(set(v)) != len(v):
            raise ValueError("entry_ids must not contain duplicates")
        return v


ManageQueueRequest = Annotated[
    Union[QueueAddRequest, QueueRemoveRequest, QueueReorderRequest],
    Field(discriminator="action"),
]


class QueueEntryOut(ORMBaseModel):
    id: uuid.UUID
    captain_id: uuid.UUID
    player_id: uuid.UUID
    position: int
    created_at: datetime | None = None


class QueueAddResult(BaseModel):
    success: bool = True
    entry: QueueEntryOut
