"""
Audit Log - buffered, append-only record of every gate decision.

Entries are queued in memory and written to a JSON file when the buffer fills,
on a timer, and at shutdown. Recording never waits on disk I/O and a failed
write never reaches the request path; the entries simply stay queued.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Optional, Union

from code_explorer.core.clock import SystemClock, iso_timestamp
from code_explorer.core.exceptions import PersistenceFailure
from code_explorer.schemas.audit_schema import AuditDetails, AuditEntry, AuditEventType
from code_explorer.utils.file_io import atomic_write_json, read_json

logger = logging.getLogger(__name__)

BUFFER_SIZE = 50  # Flush after 50 entries
FLUSH_INTERVAL_SECONDS = 5 * 60
MAX_RETAINED_ENTRIES = 1000


class JsonFileAuditStore:
    """Durable audit storage: one JSON array holding the newest entries."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read_all(self) -> list[AuditEntry]:
        """
        Load every stored entry, oldest first.

        Raises:
            PersistenceFailure: If the file cannot be read or is not a valid log
        """
        try:
            raw = read_json(self.path, default=[])
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Cannot read audit log {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise PersistenceFailure(f"Audit log {self.path} is not a JSON array")

        try:
            return [AuditEntry.model_validate(item) for item in raw]
        except ValueError as e:
            raise PersistenceFailure(f"Audit log {self.path} holds an invalid entry: {e}") from e

    def write_all(self, entries: list[AuditEntry]) -> None:
        """
        Replace the stored log.

        Raises:
            PersistenceFailure: If the file cannot be written
        """
        try:
            atomic_write_json(self.path, [entry.to_json() for entry in entries])
        except OSError as e:
            raise PersistenceFailure(f"Cannot write audit log {self.path}: {e}") from e

    def read_recent(self, limit: int) -> list[AuditEntry]:
        """Most recent ``limit`` entries, most recent first."""
        if limit <= 0:
            return []
        entries = self.read_all()
        return list(reversed(entries[-limit:]))


class AuditLog:
    """
    In-memory audit buffer in front of a durable store.

    ``record`` only appends under a short lock. Durable I/O happens in
    ``flush``, serialized by a separate lock, so appends never wait for a
    write in progress.
    """

    def __init__(
        self,
        store: JsonFileAuditStore,
        clock=None,
        buffer_size: int = BUFFER_SIZE,
        retention: int = MAX_RETAINED_ENTRIES,
    ):
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        if retention < 1:
            raise ValueError("retention must be at least 1")
        self.store = store
        self.buffer_size = buffer_size
        self.retention = retention
        self._clock = clock or SystemClock()
        self._buffer: list[AuditEntry] = []
        self._buffer_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._flush_pending = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of entries not yet written to the durable store."""
        with self._buffer_lock:
            return len(self._buffer)

    def buffered(self) -> list[AuditEntry]:
        """Snapshot of the unflushed entries, oldest first."""
        with self._buffer_lock:
            return list(self._buffer)

    def record(
        self,
        event_type: AuditEventType | str,
        session_id: str,
        ip: str,
        success: bool,
        details: Optional[AuditDetails | dict] = None,
    ) -> AuditEntry:
        """
        Append an entry and return it without waiting for any disk I/O.

        Reaching the buffer threshold triggers a flush: scheduled in the
        background when an event loop is running, inline otherwise.
        """
        if isinstance(details, dict):
            details = AuditDetails(**details)
        entry = AuditEntry(
            timestamp=iso_timestamp(self._clock.now_ms()),
            event_type=AuditEventType(event_type),
            session_id=session_id,
            ip=ip,
            success=success,
            details=details or AuditDetails(),
        )

        with self._buffer_lock:
            self._buffer.append(entry)
            full = len(self._buffer) >= self.buffer_size and not self._flush_pending
            if full:
                self._flush_pending = True

        if full:
            self._trigger_flush()
        return entry

    def log_auth_attempt(self, session_id: str, ip: str, success: bool) -> AuditEntry:
        return self.record(
            AuditEventType.AUTH, session_id, ip, success,
            AuditDetails(password_attempt=True),
        )

    def log_browse(
        self, session_id: str, ip: str, dir_path: str, success: bool, error: Optional[str] = None
    ) -> AuditEntry:
        return self.record(
            AuditEventType.BROWSE, session_id, ip, success,
            AuditDetails(path=dir_path, error=error),
        )

    def log_view(
        self, session_id: str, ip: str, file_path: str, success: bool, error: Optional[str] = None
    ) -> AuditEntry:
        return self.record(
            AuditEventType.VIEW, session_id, ip, success,
            AuditDetails(path=file_path, error=error),
        )

    def log_search(
        self, session_id: str, ip: str, query: str, success: bool, error: Optional[str] = None
    ) -> AuditEntry:
        return self.record(
            AuditEventType.SEARCH, session_id, ip, success,
            AuditDetails(query=query, error=error),
        )

    def flush(self) -> bool:
        """
        Write buffered entries to the durable store.

        Keeps only the newest ``retention`` entries. Buffered entries are
        dropped only after a successful write; anything recorded while the
        write was in progress stays queued.

        Returns:
            True if the buffer was written (or was empty), False on failure
        """
        with self._flush_lock:
            with self._buffer_lock:
                batch = list(self._buffer)
            if not batch:
                self._clear_pending()
                return True

            try:
                existing = self.store.read_all()
                self.store.write_all((existing + batch)[-self.retention:])
            except PersistenceFailure as e:
                logger.error(f"Error flushing audit logs: {e}")
                self._clear_pending()
                return False

            with self._buffer_lock:
                del self._buffer[:len(batch)]
                self._flush_pending = False
            logger.debug(f"Flushed {len(batch)} audit entries to {self.store.path}")
            return True

    async def flush_async(self) -> bool:
        """Run ``flush`` in a worker thread."""
        return await asyncio.to_thread(self.flush)

    async def drain(self) -> None:
        """Wait for background flushes started by ``record``."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def get_recent(self, limit: int = 100) -> list[AuditEntry]:
        """
        Most recent durable entries, most recent first.

        Unflushed entries are not included. Read errors are logged and give
        an empty list.
        """
        try:
            return self.store.read_recent(limit)
        except PersistenceFailure as e:
            logger.error(f"Error reading audit logs: {e}")
            return []

    def _clear_pending(self) -> None:
        with self._buffer_lock:
            self._flush_pending = False

    def _trigger_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return

        task = loop.create_task(self.flush_async())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
