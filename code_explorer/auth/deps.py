"""FastAPI dependencies for authentication."""

from typing import Annotated

from fastapi import Depends, Request

from code_explorer.api.services.rate_limiter import client_ip

from .service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """The application's AuthService, built once by create_app()."""
    return request.app.state.auth_service


def get_client_ip(request: Request) -> str:
    """Client identity used for rate limiting and audit entries."""
    return client_ip(request, request.app.state.settings.trust_proxy_headers)


# Type aliases for cleaner dependency injection
Auth = Annotated[AuthService, Depends(get_auth_service)]
ClientIp = Annotated[str, Depends(get_client_ip)]
