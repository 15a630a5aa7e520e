from __future__ import annotations

import re
import uuid
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class ORMBaseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


def _canonical_uuid(value: Any) -> Any:
    """
    Only accept the canonical 8-4-4-4-12 text form. pydantic's UUID parser is more lenient
    (braces, urn: prefix, no hyphens) and we don't want those reaching the store.
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str) or not UUID_RE.match(value):
        raise ValueError("Invalid field format")
    return value


CanonicalUUID = Annotated[uuid.UUID, BeforeValidator(_canonical_uuid)]
