"""
Repository explorer endpoints.

Every endpoint requires a valid session, applies exactly one rate limit
policy keyed by ``ip:sessionId``, and records its outcome in the audit log.
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from code_explorer.api.services.rate_limiter import BROWSE, SEARCH, VIEW
from code_explorer.api.services.repository_service import RepositoryClient, language_for_path
from code_explorer.auth.deps import Auth, ClientIp
from code_explorer.auth.schemas import SessionRecord
from code_explorer.auth.service import AuthService
from code_explorer.core.exceptions import CollaboratorFailure, ParameterError
from code_explorer.schemas.audit_schema import AuditEventType
from code_explorer.schemas.explorer_schema import BrowseResponse, SearchResponse, ViewResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/code-explorer", tags=["explorer"])


def get_repository(request: Request) -> RepositoryClient:
    return request.app.state.repository


Repository = Annotated[RepositoryClient, Depends(get_repository)]


async def _call_repository(
    auth: AuthService,
    session: SessionRecord,
    ip: str,
    event_type: AuditEventType,
    failure_message: str,
    func,
    *args,
    path: Optional[str] = None,
    query: Optional[str] = None,
):
    """Run a blocking repository call off the event loop and audit the outcome."""
    try:
        result = await run_in_threadpool(func, *args)
    except CollaboratorFailure as e:
        logger.error(f"{event_type.value} failed for {session.session_id}: {e.detail}")
        auth.record_outcome(event_type, session.session_id, ip, False, path=path, query=query, error=e.detail)
        raise
    except Exception as e:
        logger.exception(f"{event_type.value} failed for {session.session_id}")
        auth.record_outcome(event_type, session.session_id, ip, False, path=path, query=query, error=str(e))
        raise CollaboratorFailure(failure_message, detail=str(e))

    auth.record_outcome(event_type, session.session_id, ip, True, path=path, query=query)
    return result


@router.get("/browse", response_model=BrowseResponse)
async def browse(
    request: Request,
    response: Response,
    auth: Auth,
    repository: Repository,
    ip: ClientIp,
    path: str = Query("", description="Directory path (empty for the repository root)"),
):
    """
    List files and folders in a directory.

    Directories come first, then files, both alphabetical.
    """
    session = auth.guard(request, ip, BROWSE, AuditEventType.BROWSE, path=path)
    auth.cookie.write(response, session)

    items = await _call_repository(
        auth, session, ip, AuditEventType.BROWSE, "Failed to browse directory",
        repository.list_directory, path, path=path,
    )
    return BrowseResponse(path=path, items=items)


@router.get("/view", response_model=ViewResponse)
async def view(
    request: Request,
    response: Response,
    auth: Auth,
    repository: Repository,
    ip: ClientIp,
    path: Optional[str] = Query(None, description="File path"),
    full: bool = Query(False, description="Return the whole file instead of the first 50KB"),
):
    """
    View file contents.

    Large files are cut to the first 50KB unless ``full=true``.
    """
    session = auth.guard(request, ip, VIEW, AuditEventType.VIEW, path=path)
    auth.cookie.write(response, session)

    if not path:
        auth.record_outcome(
            AuditEventType.VIEW, session.session_id, ip, False, error="Path parameter is required"
        )
        raise ParameterError("Path parameter is required")

    max_chars = None if full else request.app.state.settings.view_max_bytes
    content = await _call_repository(
        auth, session, ip, AuditEventType.VIEW, "Failed to view file",
        repository.get_file, path, max_chars, path=path,
    )
    return ViewResponse(
        path=path,
        content=content.content,
        language=language_for_path(path),
        size=content.size,
        truncated=max_chars is not None and content.size > max_chars,
    )


@router.get("/search", response_model=SearchResponse)
async def search(
    request: Request,
    response: Response,
    auth: Auth,
    repository: Repository,
    ip: ClientIp,
    q: Optional[str] = Query(None, description="Search query"),
):
    """Search files in the repository."""
    session = auth.guard(request, ip, SEARCH, AuditEventType.SEARCH, query=q)
    auth.cookie.write(response, session)

    if not q or not q.strip():
        auth.record_outcome(
            AuditEventType.SEARCH, session.session_id, ip, False,
            query=q or "", error="Search query is required",
        )
        raise ParameterError("Search query is required")

    results = await _call_repository(
        auth, session, ip, AuditEventType.SEARCH, "Search failed",
        repository.search, q, query=q,
    )
    return SearchResponse(query=q, results=results, count=len(results))
