"""Pydantic schemas for authentication."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LoginRequest(BaseModel):
    """Request body for the login endpoint."""

    password: Optional[str] = Field(default=None, description="Shared access password")


class LoginResponse(BaseModel):
    """Response body for a successful login."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    session_id: str
    message: str = "Authentication successful"


class SessionStatus(BaseModel):
    """Response body for the session check endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    authenticated: bool
    session_id: Optional[str] = None


class LogoutResponse(BaseModel):
    """Response body for logout."""

    success: bool = True
    message: str = "Logged out"


class SessionRecord(BaseModel):
    """
    Session state carried in the signed cookie.

    Timestamps are epoch milliseconds.
    """

    session_id: str
    authenticated: bool
    created_at: int
    last_activity: int
