from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """Small in-process cache for read results that may be served slightly stale."""

    def __init__(self, ttl_seconds: int, *, clock: Callable[[], float] = time.monotonic):
        self._ttl = max(0, int(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._next_sweep = 0.0

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        if self._ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)
            self._entries[key] = (now + self._ttl, value)

    def _sweep(self, now: float) -> None:
        # At most one full pass per TTL period.
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self._ttl

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is not sentinel:
            return value
        value = compute()
        self.set(key, value)
        return value

    def invalidate(self, predicate: Optional[Callable[[Hashable], bool]] = None) -> int:
        with self._lock:
            if predicate is None:
                removed = len(self._entries)
                self._entries.clear()
                return removed
            stale = [key for key in self._entries if predicate(key)]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["TTLCache"]
