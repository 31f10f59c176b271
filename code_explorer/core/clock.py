"""
Time sources.

Every expiry and window calculation in the gateway is driven by wall-clock
milliseconds since the epoch, read through a clock object so tests can move
time forward explicitly.
"""
import threading
import time
from datetime import datetime, timezone


class SystemClock:
    """Clock backed by the system wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """
    Clock whose time only changes when told to.

    Example:
        >>> clock = ManualClock(1_000)
        >>> clock.advance(seconds=61 * 60)
        >>> clock.now_ms()
        3661000
    """

    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now = int(now_ms)

    def advance(self, ms: int = 0, seconds: float = 0) -> None:
        with self._lock:
            self._now += int(ms + seconds * 1000)


def iso_timestamp(now_ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC string, e.g. 2024-05-01T12:00:00.000Z."""
    dt = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
