"""
Repository Service - read-only access to the repository behind the explorer.

The gateway only depends on the RepositoryClient interface. GitHubRepository
implements it with the GitHub REST API (contents + code search) and a small
in-memory TTL cache.
"""
import base64
import binascii
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Any, Optional

import requests

from code_explorer.core.clock import SystemClock
from code_explorer.core.exceptions import CollaboratorFailure
from code_explorer.schemas.explorer_schema import FileContent, LineMatch, RepoItem, SearchHit

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5 * 60
MAX_CACHED_FILE_SIZE = 100 * 1024
SEARCH_CANDIDATES = 20
MATCHES_PER_FILE = 3
MAX_SEARCH_RESULTS = 10
TRUNCATION_MARKER = "\n\n// ... (file truncated)"

LANGUAGE_BY_EXTENSION = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "jsx": "jsx",
    "py": "python",
    "java": "java",
    "json": "json",
    "css": "css",
    "scss": "scss",
    "sh": "bash",
    "bash": "bash",
    "md": "markdown",
    "yaml": "yaml",
    "yml": "yaml",
    "sql": "sql",
    "html": "html",
    "xml": "xml",
}


def language_for_path(path: str) -> str:
    """Language name for a file path, from its extension ("plaintext" if unknown)."""
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return LANGUAGE_BY_EXTENSION.get(suffix, "plaintext")


def truncate_content(content: FileContent, max_chars: Optional[int]) -> FileContent:
    if max_chars is None or len(content.content) <= max_chars:
        return content
    return content.model_copy(
        update={"content": content.content[:max_chars] + TRUNCATION_MARKER}
    )


class RepositoryClient(ABC):
    """Browse/view/search operations the explorer endpoints rely on."""

    @abstractmethod
    def list_directory(self, path: str = "") -> list[RepoItem]:
        """Entries of a directory, directories first then by name."""

    @abstractmethod
    def get_file(self, path: str, max_chars: Optional[int] = None) -> FileContent:
        """File contents, cut to ``max_chars`` when given."""

    @abstractmethod
    def search(self, query: str) -> list[SearchHit]:
        """Files containing ``query`` with a few matching lines each."""


class TTLCache:
    """Tiny thread-safe cache with per-entry expiry."""

    def __init__(self, ttl_seconds: float, clock=None):
        self._ttl_ms = int(ttl_seconds * 1000)
        self._clock = clock or SystemClock()
        self._data: dict[str, tuple[int, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = self._clock.now_ms()
        with self._lock:
            hit = self._data.get(key)
            if hit is None:
                return None
            stored_at, value = hit
            if now - stored_at < self._ttl_ms:
                return value
            del self._data[key]
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = (self._clock.now_ms(), value)


class GitHubRepository(RepositoryClient):
    """RepositoryClient backed by the GitHub REST API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        branch: str = "main",
        token: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        cache_ttl_seconds: float = CACHE_TTL_SECONDS,
        session: Optional[requests.Session] = None,
        clock=None,
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.cache = TTLCache(cache_ttl_seconds, clock=clock)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings) -> "GitHubRepository":
        return cls(
            owner=settings.github_owner,
            repo=settings.github_repo,
            branch=settings.github_branch,
            token=settings.github_token,
            api_url=settings.github_api_url,
            timeout=settings.github_timeout,
            cache_ttl_seconds=settings.repository_cache_ttl_seconds,
        )

    def _get(self, url: str, params: Optional[dict] = None) -> Any:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _contents(self, path: str) -> Any:
        url = f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{path.strip('/')}"
        return self._get(url, params={"ref": self.branch})

    def list_directory(self, path: str = "") -> list[RepoItem]:
        cache_key = f"dir:{path}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = self._contents(path)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching directory contents for '{path}': {e}")
            raise CollaboratorFailure("Failed to browse directory", detail=f"Failed to fetch directory: {e}")

        if not isinstance(data, list):
            raise CollaboratorFailure("Failed to browse directory", detail="Path is not a directory")

        items = [
            RepoItem(
                name=item["name"],
                path=item["path"],
                type="dir" if item.get("type") == "dir" else "file",
                size=item.get("size"),
                sha=item.get("sha"),
            )
            for item in data
        ]
        items.sort(key=lambda i: (i.type != "dir", i.name.lower()))

        self.cache.set(cache_key, items)
        return items

    def get_file(self, path: str, max_chars: Optional[int] = None) -> FileContent:
        cache_key = f"file:{path}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return truncate_content(cached, max_chars)

        try:
            data = self._contents(path)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching file content for '{path}': {e}")
            raise CollaboratorFailure("Failed to view file", detail=f"Failed to fetch file: {e}")

        if not isinstance(data, dict) or data.get("type") != "file":
            raise CollaboratorFailure("Failed to view file", detail="Path is not a file")

        text = ""
        if data.get("content"):
            try:
                text = base64.b64decode(data["content"]).decode("utf-8", errors="replace")
            except (binascii.Error, ValueError) as e:
                raise CollaboratorFailure("Failed to view file", detail=f"Undecodable content: {e}")

        content = FileContent(
            content=text,
            size=data.get("size") or 0,
            encoding=data.get("encoding") or "utf-8",
        )
        if content.size < MAX_CACHED_FILE_SIZE:
            self.cache.set(cache_key, content)

        return truncate_content(content, max_chars)

    def search(self, query: str) -> list[SearchHit]:
        if not query or not query.strip():
            return []

        try:
            data = self._get(
                f"{self.api_url}/search/code",
                params={"q": f"{query} repo:{self.owner}/{self.repo}", "per_page": SEARCH_CANDIDATES},
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error searching repository for '{query}': {e}")
            raise CollaboratorFailure("Search failed", detail=f"Search failed: {e}")

        needle = query.lower()
        results: list[SearchHit] = []
        for item in data.get("items", []):
            try:
                content = self.get_file(item["path"])
            except CollaboratorFailure as e:
                # Unreadable candidates are skipped
                logger.warning(f"Error reading file {item.get('path')}: {e.detail}")
                continue

            matches = [
                LineMatch(line_number=index, line=line.strip())
                for index, line in enumerate(content.content.split("\n"), start=1)
                if needle in line.lower()
            ]
            if matches:
                results.append(SearchHit(path=item["path"], matches=matches[:MATCHES_PER_FILE]))
            if len(results) >= MAX_SEARCH_RESULTS:
                break

        return results

    def verify_connection(self) -> bool:
        """True if the configured repository is reachable with the current credentials."""
        try:
            self._get(f"{self.api_url}/repos/{self.owner}/{self.repo}")
            return True
        except (requests.RequestException, ValueError) as e:
            logger.error(f"GitHub connection verification failed: {e}")
            return False
