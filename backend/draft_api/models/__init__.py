from draft_api.models.audit_log import AuditLog
from draft_api.models.base import Base
from draft_api.models.captain import Captain
from draft_api.models.draft import Draft
from draft_api.models.draft_pick import DraftPick
from draft_api.models.player import Player
from draft_api.models.queue_entry import QueueEntry
from draft_api.models.user import User

__all__ = [
    "AuditLog",
    "Base",
    "Captain",
    "Draft",
    "DraftPick",
    "Player",
    "QueueEntry",
    "User",
]
