"""Per-key suppression window for outbound alerts."""

from __future__ import annotations

from typing import Dict, Optional


ONE_DAY_MS = 24 * 60 * 60 * 1000


class NotificationThrottle:
    """Remembers when each alert key was last delivered.

    Deciding (``allow``) and recording (``record``) are separate so that a key
    is only marked once delivery has actually succeeded. State lives in memory
    for the lifetime of the process.
    """

    def __init__(self, window_ms: int = ONE_DAY_MS):
        self.window_ms = int(window_ms)
        self._last_sent_ms: Dict[str, int] = {}

    def allow(self, key: str, now_ms: int) -> bool:
        """Return True if an alert for ``key`` may be sent at ``now_ms``."""
        last = self._last_sent_ms.get(key)
        if last is None:
            return True
        return (int(now_ms) - last) >= self.window_ms

    def record(self, key: str, now_ms: int) -> None:
        """Mark ``key`` as successfully delivered at ``now_ms``."""
        self._last_sent_ms[key] = int(now_ms)

    def last_sent(self, key: str) -> Optional[int]:
        return self._last_sent_ms.get(key)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._last_sent_ms)
