"""
Pytest fixtures for Code Explorer tests.

Provides a manual clock, isolated settings, an in-memory repository and a
TestClient wired to an application built from them.
"""
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from code_explorer.api.services.audit_log import AuditLog, JsonFileAuditStore
from code_explorer.api.services.rate_limiter import RateLimiter
from code_explorer.api.services.repository_service import RepositoryClient, truncate_content
from code_explorer.core.clock import ManualClock
from code_explorer.core.exceptions import CollaboratorFailure
from code_explorer.core.settings import Settings
from code_explorer.main import create_app
from code_explorer.schemas.explorer_schema import FileContent, LineMatch, RepoItem, SearchHit

PASSWORD = "correct-horse"
START_MS = 1_700_000_000_000


class FakeRepository(RepositoryClient):
    """In-memory repository for endpoint tests."""

    def __init__(self, files: Optional[dict] = None):
        self.files = files or {
            "README.md": "# Demo\nhello world\n",
            "src/app.py": "import os\n\ndef hello():\n    return 'Hello'\n",
            "src/util.ts": "export const x = 1;\n",
        }
        self.fail_with: Optional[Exception] = None
        self.calls: list[tuple] = []

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def list_directory(self, path: str = "") -> list[RepoItem]:
        self.calls.append(("list_directory", path))
        self._maybe_fail()
        prefix = f"{path.strip('/')}/" if path else ""
        names = {}
        for file_path in self.files:
            if not file_path.startswith(prefix):
                continue
            head, _, rest = file_path[len(prefix):].partition("/")
            names[head] = "dir" if rest else "file"
        items = [
            RepoItem(name=name, path=f"{prefix}{name}", type=kind)
            for name, kind in names.items()
        ]
        items.sort(key=lambda i: (i.type != "dir", i.name.lower()))
        return items

    def get_file(self, path: str, max_chars: Optional[int] = None) -> FileContent:
        self.calls.append(("get_file", path, max_chars))
        self._maybe_fail()
        if path not in self.files:
            raise CollaboratorFailure("Failed to view file", detail="Path is not a file")
        text = self.files[path]
        return truncate_content(FileContent(content=text, size=len(text)), max_chars)

    def search(self, query: str) -> list[SearchHit]:
        self.calls.append(("search", query))
        self._maybe_fail()
        hits = []
        for path, text in self.files.items():
            matches = [
                LineMatch(line_number=i, line=line.strip())
                for i, line in enumerate(text.split("\n"), start=1)
                if query.lower() in line.lower()
            ]
            if matches:
                hits.append(SearchHit(path=path, matches=matches[:3]))
        return hits


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant; tests move it explicitly."""
    return ManualClock(START_MS)


@pytest.fixture
def audit_path(tmp_path):
    return tmp_path / "data" / "audit-logs.json"


@pytest.fixture
def test_settings(audit_path):
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        environment="test",
        session_secret="test-session-secret-0123456789abcdef",
        access_password=PASSWORD,
        audit_log_path=str(audit_path),
        # Large enough that requests never trigger a background flush
        audit_buffer_size=1000,
    )


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def app(test_settings, repository, clock):
    return create_app(settings=test_settings, repository=repository, clock=clock)


@pytest.fixture
def client(app):
    """TestClient without lifespan; background tasks are not started."""
    return TestClient(app)


@pytest.fixture
def logged_in_client(client):
    """Client holding an authenticated session cookie."""
    response = client.post("/api/code-explorer/auth", json={"password": PASSWORD})
    assert response.status_code == 200
    return client


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(clock=clock)


@pytest.fixture
def audit_store(audit_path):
    return JsonFileAuditStore(audit_path)


@pytest.fixture
def audit_log(audit_store, clock):
    return AuditLog(audit_store, clock=clock, buffer_size=5, retention=20)
