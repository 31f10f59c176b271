"""Authentication module for the code explorer password gate."""

from .router import router as auth_router
from .deps import get_auth_service, get_client_ip
from .schemas import LoginRequest, LoginResponse, SessionRecord, SessionStatus
from .service import AuthService
from .session import SessionCodec, SessionCookie, SessionState, evaluate_session

__all__ = [
    "auth_router",
    "get_auth_service",
    "get_client_ip",
    "AuthService",
    "LoginRequest",
    "LoginResponse",
    "SessionCodec",
    "SessionCookie",
    "SessionRecord",
    "SessionState",
    "SessionStatus",
    "evaluate_session",
]
