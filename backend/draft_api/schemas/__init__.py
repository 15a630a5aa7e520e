from draft_api.schemas.draft import (
    CaptainOut,
    DraftOut,
    DraftPickOut,
    DraftStatusOut,
    PlayerOut,
    ToggleAutoPickRequest,
    ToggleAutoPickResult,
)
from draft_api.schemas.picks import (
    AutoPickRequest,
    AutoPickResult,
    MakePickRequest,
    PickResult,
    PickSummary,
    RestartDraftRequest,
    SoftErrorOut,
    SuccessOut,
    UndoPickRequest,
    UndoResult,
)
from draft_api.schemas.queue import (
    ManageQueueRequest,
    QueueAddRequest,
    QueueAddResult,
    QueueEntryOut,
    QueueRemoveRequest,
    QueueReorderRequest,
)

__all__ = [
    "AutoPickRequest",
    "AutoPickResult",
    "CaptainOut",
    "DraftOut",
    "DraftPickOut",
    "DraftStatusOut",
    "MakePickRequest",
    "ManageQueueRequest",
    "PickResult",
    "PickSummary",
    "PlayerOut",
    "QueueAddRequest",
    "QueueAddResult",
    "QueueEntryOut",
    "QueueRemoveRequest",
    "QueueReorderRequest",
    "RestartDraftRequest",
    "SoftErrorOut",
    "SuccessOut",
    "ToggleAutoPickRequest",
    "ToggleAutoPickResult",
    "UndoPickRequest",
    "UndoResult",
]
