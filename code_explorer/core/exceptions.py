"""Exception taxonomy for the gateway.

Every error that can reach a caller derives from GatewayError and carries the
HTTP status and the message shown to the client. PersistenceFailure is the one
exception that never leaves the audit subsystem.
"""
from typing import Any, Optional


class GatewayError(Exception):
    """Base class for errors rendered as a small JSON body."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class AdmissionDenied(GatewayError):
    """Rate limit exceeded or identifier currently blocked."""

    status_code = 429

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.retry_after is not None:
            payload["retryAfter"] = self.retry_after
        return payload


class Unauthenticated(GatewayError):
    """
    Missing, invalid, or expired session.

    ``expired`` is kept for logging only; clients see the same response either
    way. ``persist`` holds the session record the handler must write back
    (an expired session flipped to unauthenticated), if any.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized - Please authenticate first",
        expired: bool = False,
        persist: Any = None,
        body: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.expired = expired
        self.persist = persist
        self.body = body

    def to_payload(self) -> dict[str, Any]:
        if self.body is not None:
            return dict(self.body)
        return super().to_payload()


class InvalidCredential(GatewayError):
    """Submitted password did not match."""

    status_code = 401

    def __init__(self, message: str = "Invalid password"):
        super().__init__(message)


class ParameterError(GatewayError):
    """A required request parameter is missing or blank."""

    status_code = 400


class CollaboratorFailure(GatewayError):
    """
    The repository backend failed.

    ``detail`` keeps the underlying message for logs and audit entries; the
    client only sees the generic ``message``.
    """

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail or message


class PersistenceFailure(Exception):
    """Durable audit storage could not be read or written."""

    pass
