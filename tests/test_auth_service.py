"""
Tests for AuthService: the login flow and the guard in front of protected
operations.
"""
from unittest.mock import MagicMock

import pytest

from code_explorer.api.services.audit_log import AuditLog
from code_explorer.api.services.rate_limiter import AUTH, BROWSE, SEARCH
from code_explorer.auth.service import AuthService
from code_explorer.auth.session import SessionCodec, SessionCookie
from code_explorer.core.exceptions import (
    AdmissionDenied,
    InvalidCredential,
    ParameterError,
    Unauthenticated,
)
from code_explorer.schemas.audit_schema import AuditEventType

from tests.conftest import PASSWORD

COOKIE = "code_explorer_session"
IP = "203.0.113.5"


@pytest.fixture
def cookie():
    return SessionCookie(SessionCodec("service-test-secret-0123456789abcdef"), name=COOKIE)


@pytest.fixture
def service(cookie, rate_limiter, audit_store, clock):
    audit = AuditLog(audit_store, clock=clock, buffer_size=1000)
    return AuthService(
        password=PASSWORD,
        cookie=cookie,
        rate_limiter=rate_limiter,
        audit_log=audit,
        clock=clock,
    )


def _request(cookie, record=None):
    request = MagicMock()
    request.cookies = {COOKIE: cookie.codec.encode(record)} if record else {}
    return request


def _audit(service):
    return [(e.session_id, e.success, e.details.error) for e in service.audit_log.buffered()]


class TestLogin:
    """Tests for admit_login and authenticate."""

    def test_success_creates_session(self, service, clock):
        """Should return a new authenticated session and audit it."""
        service.admit_login(IP)
        record = service.authenticate(PASSWORD, IP)
        assert record.authenticated
        assert record.created_at == clock.now_ms()
        entry = service.audit_log.buffered()[-1]
        assert entry.session_id == record.session_id
        assert entry.success and entry.details.password_attempt

    def test_wrong_password(self, service):
        """Should raise InvalidCredential and audit the attempt."""
        with pytest.raises(InvalidCredential) as exc_info:
            service.authenticate("nope", IP)
        assert exc_info.value.status_code == 401
        assert _audit(service) == [("invalid-password", False, None)]

    def test_missing_password(self, service):
        """Should raise ParameterError for an empty password."""
        with pytest.raises(ParameterError, match="Password is required"):
            service.authenticate("", IP)
        assert _audit(service) == [("invalid-request", False, None)]

    def test_unset_password_never_matches(self, cookie, rate_limiter, audit_log, clock):
        """Should refuse every password while none is configured."""
        service = AuthService("", cookie, rate_limiter, audit_log, clock=clock)
        with pytest.raises(InvalidCredential):
            service.authenticate("anything", IP)

    def test_sixth_attempt_is_rate_limited(self, service):
        """Should deny the sixth attempt in the window even with the right password."""
        for _ in range(AUTH.max_requests):
            service.admit_login(IP)
        with pytest.raises(AdmissionDenied) as exc_info:
            service.admit_login(IP)
        assert exc_info.value.retry_after == 1800
        assert exc_info.value.to_payload() == {
            "error": "Too many authentication attempts. Please try again later.",
            "retryAfter": 1800,
        }
        assert _audit(service)[-1] == ("rate-limited", False, None)


class TestGuard:
    """Tests for require_session and guard."""

    def test_missing_session(self, service, cookie):
        """Should raise Unauthenticated and audit it without touching the limiter."""
        with pytest.raises(Unauthenticated) as exc_info:
            service.guard(_request(cookie), IP, BROWSE, AuditEventType.BROWSE, path="src")
        assert exc_info.value.persist is None
        assert _audit(service) == [("unauthenticated", False, "Unauthenticated")]
        assert len(service.rate_limiter) == 0

    def test_active_session_refreshed(self, service, cookie, clock):
        """Should return the session with last_activity moved to now."""
        record = service.authenticate(PASSWORD, IP)
        clock.advance(seconds=120)
        refreshed = service.guard(_request(cookie, record), IP, BROWSE, AuditEventType.BROWSE)
        assert refreshed.session_id == record.session_id
        assert refreshed.last_activity == clock.now_ms()
        assert f"{IP}:{record.session_id}" in service.rate_limiter

    def test_expired_session(self, service, cookie, clock):
        """Should raise Unauthenticated carrying the flipped record."""
        record = service.authenticate(PASSWORD, IP)
        clock.advance(seconds=61 * 60)
        with pytest.raises(Unauthenticated) as exc_info:
            service.require_session(_request(cookie, record))
        assert exc_info.value.expired
        assert exc_info.value.persist.authenticated is False
        assert exc_info.value.to_payload() == {"error": "Unauthorized - Please authenticate first"}

    def test_custom_body(self, service, cookie):
        """Should render the body given by the caller."""
        with pytest.raises(Unauthenticated) as exc_info:
            service.require_session(_request(cookie), body={"authenticated": False})
        assert exc_info.value.to_payload() == {"authenticated": False}

    def test_search_limit_message(self, service, cookie):
        """Should use the search wording once the search limit is hit."""
        record = service.authenticate(PASSWORD, IP)
        request = _request(cookie, record)
        for _ in range(SEARCH.max_requests):
            service.guard(request, IP, SEARCH, AuditEventType.SEARCH, query="x")

        with pytest.raises(AdmissionDenied) as exc_info:
            service.guard(request, IP, SEARCH, AuditEventType.SEARCH, query="x")
        assert exc_info.value.message == "Too many search requests. Please wait before searching again."
        assert exc_info.value.retry_after == 600
        assert _audit(service)[-1] == (record.session_id, False, "Rate limit exceeded")

    def test_browse_limit_message(self, service, cookie):
        """Should use the generic wording for other policies."""
        record = service.authenticate(PASSWORD, IP)
        request = _request(cookie, record)
        for _ in range(BROWSE.max_requests):
            service.guard(request, IP, BROWSE, AuditEventType.BROWSE)

        with pytest.raises(AdmissionDenied, match="Too many requests. Please slow down."):
            service.guard(request, IP, BROWSE, AuditEventType.BROWSE)

    def test_sessions_limited_separately(self, service, cookie):
        """Should key protected limits by IP and session together."""
        first = service.authenticate(PASSWORD, IP)
        second = service.authenticate(PASSWORD, IP)
        for _ in range(SEARCH.max_requests):
            service.guard(_request(cookie, first), IP, SEARCH, AuditEventType.SEARCH)

        with pytest.raises(AdmissionDenied):
            service.guard(_request(cookie, first), IP, SEARCH, AuditEventType.SEARCH)
        assert service.guard(_request(cookie, second), IP, SEARCH, AuditEventType.SEARCH)
