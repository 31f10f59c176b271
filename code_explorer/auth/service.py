"""Authentication service - the gate in front of every explorer operation."""

import logging
import secrets
from typing import Optional

from fastapi import Request

from code_explorer.api.services.audit_log import AuditLog
from code_explorer.api.services.rate_limiter import (
    AUTH,
    SEARCH,
    RateLimiter,
    RateLimitPolicy,
    rate_limit_key,
)
from code_explorer.core.clock import SystemClock
from code_explorer.core.exceptions import (
    AdmissionDenied,
    InvalidCredential,
    ParameterError,
    Unauthenticated,
)
from code_explorer.schemas.audit_schema import AuditDetails, AuditEventType

from .schemas import SessionRecord
from .session import (
    INACTIVITY_LIMIT_MS,
    SessionCookie,
    SessionState,
    evaluate_session,
    new_session,
)

logger = logging.getLogger(__name__)

# Synthetic session ids recorded in the audit log for rejected requests
RATE_LIMITED = "rate-limited"
INVALID_PASSWORD = "invalid-password"
INVALID_REQUEST = "invalid-request"
LOGIN_ERROR = "error"
UNAUTHENTICATED = "unauthenticated"


class AuthService:
    """
    Orchestrates rate limiting, the password check, the session cookie, and
    audit logging.

    Login: rate limiter (by IP) -> password -> new session -> audit.
    Protected calls: session -> rate limiter (by ``ip:sessionId``) -> audit.
    """

    def __init__(
        self,
        password: str,
        cookie: SessionCookie,
        rate_limiter: RateLimiter,
        audit_log: AuditLog,
        clock=None,
        inactivity_limit_ms: int = INACTIVITY_LIMIT_MS,
    ):
        self._password = password or ""
        self.cookie = cookie
        self.rate_limiter = rate_limiter
        self.audit_log = audit_log
        self.clock = clock or SystemClock()
        self.inactivity_limit_ms = inactivity_limit_ms

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def admit_login(self, ip: str) -> None:
        """
        Apply the AUTH policy to a login attempt from ``ip``.

        Runs before the request body is read.

        Raises:
            AdmissionDenied: If the IP is over its limit or blocked
        """
        decision = self.rate_limiter.check(rate_limit_key(ip), AUTH)
        if not decision.allowed:
            self.audit_log.log_auth_attempt(RATE_LIMITED, ip, False)
            raise AdmissionDenied(
                "Too many authentication attempts. Please try again later.",
                retry_after=decision.retry_after,
            )

    def authenticate(self, password: Optional[str], ip: str) -> SessionRecord:
        """
        Check the submitted password and open a new session.

        Args:
            password: Submitted password
            ip: Client IP, for the audit log

        Returns:
            The new SessionRecord (caller writes the cookie)

        Raises:
            ParameterError: If no password was submitted
            InvalidCredential: If the password does not match
        """
        if not password:
            self.audit_log.log_auth_attempt(INVALID_REQUEST, ip, False)
            raise ParameterError("Password is required")

        if not self._password_matches(password):
            logger.warning(f"Invalid password attempt from {ip}")
            self.audit_log.log_auth_attempt(INVALID_PASSWORD, ip, False)
            raise InvalidCredential()

        record = new_session(self.clock.now_ms())
        self.audit_log.log_auth_attempt(record.session_id, ip, True)
        logger.info(f"Authenticated {record.session_id} from {ip}")
        return record

    def record_login_error(self, ip: str) -> None:
        self.audit_log.log_auth_attempt(LOGIN_ERROR, ip, False)

    def _password_matches(self, password: str) -> bool:
        # An unset password must never match, not even an empty submission
        if not self._password:
            return False
        return secrets.compare_digest(
            password.encode("utf-8"), self._password.encode("utf-8")
        )

    # ------------------------------------------------------------------
    # Session checks
    # ------------------------------------------------------------------

    def check_session(self, request: Request) -> tuple[Optional[SessionRecord], SessionState]:
        """Decode the request's cookie and evaluate it at the current time."""
        return evaluate_session(
            self.cookie.read(request), self.clock.now_ms(), self.inactivity_limit_ms
        )

    def require_session(self, request: Request, body: Optional[dict] = None) -> SessionRecord:
        """
        Return the refreshed session for ``request``.

        The caller must write the returned record back to the cookie.

        Raises:
            Unauthenticated: For a missing, invalid, or expired session. An
                expired session's flipped record travels in ``persist``.
        """
        record, state = self.check_session(request)
        if state is SessionState.ACTIVE:
            return record
        if state is SessionState.EXPIRED:
            logger.info(f"Session {record.session_id} expired after inactivity")
            raise Unauthenticated(expired=True, persist=record, body=body)
        raise Unauthenticated(body=body)

    def guard(
        self,
        request: Request,
        ip: str,
        policy: RateLimitPolicy,
        event_type: AuditEventType,
        path: Optional[str] = None,
        query: Optional[str] = None,
    ) -> SessionRecord:
        """
        Admit a protected request: session first, then the endpoint's policy
        keyed by ``ip:sessionId``. Rejections are audited before raising.

        Raises:
            Unauthenticated: No valid session
            AdmissionDenied: Over the policy's limit
        """
        try:
            record = self.require_session(request)
        except Unauthenticated:
            self.record_outcome(
                event_type, UNAUTHENTICATED, ip, False,
                path=path, query=query, error="Unauthenticated",
            )
            raise

        decision = self.rate_limiter.check(rate_limit_key(ip, record.session_id), policy)
        if not decision.allowed:
            self.record_outcome(
                event_type, record.session_id, ip, False,
                path=path, query=query, error="Rate limit exceeded",
            )
            if policy is SEARCH:
                message = "Too many search requests. Please wait before searching again."
            else:
                message = "Too many requests. Please slow down."
            raise AdmissionDenied(message, retry_after=decision.retry_after)

        return record

    def record_outcome(
        self,
        event_type: AuditEventType,
        session_id: str,
        ip: str,
        success: bool,
        path: Optional[str] = None,
        query: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        self.audit_log.record(
            event_type, session_id, ip, success,
            AuditDetails(path=path, query=query, error=error),
        )
