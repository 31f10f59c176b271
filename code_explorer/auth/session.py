"""
Session cookie codec and lifecycle rules.

The cookie is the session store: the whole SessionRecord travels in a signed
token and the server keeps no table. ``evaluate_session`` is the single place
where expiry is decided; it returns the record to write back instead of
mutating anything.
"""
import logging
import secrets
from enum import Enum
from typing import Optional

import jwt
from fastapi import Request, Response

from .schemas import SessionRecord

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
INACTIVITY_LIMIT_MS = 60 * 60 * 1000  # 1 hour
SESSION_ID_PREFIX = "session_"


class SessionState(str, Enum):
    ACTIVE = "active"
    MISSING = "missing"
    EXPIRED = "expired"


def new_session_id() -> str:
    """Unguessable session id (192 bits from the OS CSPRNG)."""
    return f"{SESSION_ID_PREFIX}{secrets.token_urlsafe(24)}"


def new_session(now_ms: int) -> SessionRecord:
    """Record for a freshly authenticated browser."""
    return SessionRecord(
        session_id=new_session_id(),
        authenticated=True,
        created_at=now_ms,
        last_activity=now_ms,
    )


def evaluate_session(
    record: Optional[SessionRecord],
    now_ms: int,
    inactivity_limit_ms: int = INACTIVITY_LIMIT_MS,
) -> tuple[Optional[SessionRecord], SessionState]:
    """
    Decide whether a session may be used at ``now_ms``.

    Args:
        record: Decoded cookie contents, or None when there is no usable cookie
        now_ms: Current time in epoch milliseconds
        inactivity_limit_ms: Maximum idle time

    Returns:
        (record to persist, state). For MISSING the record is returned as
        given. EXPIRED returns a copy flipped to unauthenticated and keeps the
        old last_activity. ACTIVE returns a copy with last_activity refreshed.
    """
    if record is None or not record.authenticated:
        return record, SessionState.MISSING

    if now_ms - record.last_activity > inactivity_limit_ms:
        return record.model_copy(update={"authenticated": False}), SessionState.EXPIRED

    return record.model_copy(update={"last_activity": now_ms}), SessionState.ACTIVE


class SessionCodec:
    """Encode/decode SessionRecord as an HS256-signed token."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret

    def encode(self, record: SessionRecord) -> str:
        payload = {
            "sid": record.session_id,
            "auth": record.authenticated,
            "created": record.created_at,
            "act": record.last_activity,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: Optional[str]) -> Optional[SessionRecord]:
        """
        Decode a cookie value.

        Returns None for a missing, tampered, or malformed cookie.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
            return SessionRecord(
                session_id=payload["sid"],
                authenticated=bool(payload["auth"]),
                created_at=int(payload["created"]),
                last_activity=int(payload["act"]),
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected session cookie: {e}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Session cookie has an unexpected payload: {e}")
            return None


class SessionCookie:
    """Reads and writes the single session cookie on HTTP requests/responses."""

    def __init__(
        self,
        codec: SessionCodec,
        name: str = "code_explorer_session",
        max_age: int = 60 * 60,
        secure: bool = False,
    ):
        self.codec = codec
        self.name = name
        self.max_age = max_age
        self.secure = secure

    def read(self, request: Request) -> Optional[SessionRecord]:
        return self.codec.decode(request.cookies.get(self.name))

    def write(self, response: Response, record: SessionRecord) -> None:
        response.set_cookie(
            key=self.name,
            value=self.codec.encode(record),
            max_age=self.max_age,
            httponly=True,
            secure=self.secure,
            samesite="lax",
            path="/",
        )

    def clear(self, response: Response) -> None:
        response.delete_cookie(
            key=self.name,
            path="/",
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )
