"""
Pydantic schemas for audit log entries.

Durable entries use camelCase keys (``eventType``, ``sessionId``,
``passwordAttempt``); unset detail fields are left out.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AuditEventType(str, Enum):
    AUTH = "auth"
    BROWSE = "browse"
    VIEW = "view"
    SEARCH = "search"


class AuditDetails(BaseModel):
    """Free-form context attached to an audit entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    path: Optional[str] = None
    query: Optional[str] = None
    error: Optional[str] = None
    password_attempt: Optional[bool] = None


class AuditEntry(BaseModel):
    """One gate decision. Never modified once created."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: str
    event_type: AuditEventType
    session_id: str
    ip: str
    success: bool
    details: AuditDetails = AuditDetails()

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
