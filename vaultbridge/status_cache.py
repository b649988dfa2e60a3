# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Short-lived memo of a backend's "am I authenticated" answer."""

import threading
import time
from datetime import timedelta

DEFAULT_STATUS_TTL = timedelta(seconds=5)


class StatusCache:
    """Caches one boolean for a short time window.

    Backends whose status check spawns a process call :meth:`get` first and
    only run the real check on a miss. Call :meth:`invalidate` right after
    anything that changes the answer, such as a successful unlock.

    Uses a monotonic clock so wall-clock adjustments cannot extend or cut
    short the window. Safe to share between threads and tasks.
    """

    def __init__(self, ttl: timedelta = DEFAULT_STATUS_TTL):
        self.ttl = ttl
        self._lock = threading.Lock()
        self._value: bool | None = None
        self._stored_at = 0.0

    def get(self) -> bool | None:
        """Return the cached value, or None if nothing is cached or it is stale."""
        with self._lock:
            if self._value is None:
                return None
            if time.monotonic() - self._stored_at >= self.ttl.total_seconds():
                return None
            return self._value

    def set(self, value: bool) -> None:
        with self._lock:
            self._value = bool(value)
            self._stored_at = time.monotonic()

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
