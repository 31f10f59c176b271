"""Authentication API router."""

import logging

from fastapi import APIRouter, Request, Response

from code_explorer.core.exceptions import GatewayError

from .deps import Auth, ClientIp
from .schemas import LoginRequest, LoginResponse, LogoutResponse, SessionStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/code-explorer", tags=["auth"])


@router.post("/auth", response_model=LoginResponse, response_model_by_alias=True)
async def login(request: Request, response: Response, auth: Auth, ip: ClientIp):
    """
    Authenticate with the shared password.

    Rate limited per client IP before the body is read. Sets the session
    cookie on success.

    - **password**: shared access password
    """
    auth.admit_login(ip)

    try:
        try:
            login_data = LoginRequest.model_validate(await request.json())
        except ValueError:
            login_data = LoginRequest()

        record = auth.authenticate(login_data.password, ip)
        auth.cookie.write(response, record)

    except GatewayError:
        raise
    except Exception:
        logger.exception("Authentication error")
        auth.record_login_error(ip)
        raise GatewayError("Authentication failed")

    return LoginResponse(session_id=record.session_id)


@router.get("/auth", response_model=SessionStatus, response_model_by_alias=True)
async def check_auth(request: Request, response: Response, auth: Auth):
    """
    Check authentication status.

    Returns 200 while the session is active (and refreshes it), 401 otherwise.
    Checking an idle session never renews it.
    """
    record = auth.require_session(request, body={"authenticated": False})
    auth.cookie.write(response, record)
    return SessionStatus(authenticated=True, session_id=record.session_id)


@router.delete("/auth", response_model=LogoutResponse)
async def logout(request: Request, response: Response, auth: Auth):
    """
    Log out and destroy the session.

    Always succeeds, even without a session.
    """
    record = auth.cookie.read(request)
    auth.cookie.clear(response)
    if record is not None:
        logger.info(f"Session {record.session_id} logged out")
    return LogoutResponse()
