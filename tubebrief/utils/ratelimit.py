import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

class RateLimiter:
    """Sliding window request counter keyed by client address.

    Clients whose hits have all left the window are dropped by a sweep that
    runs at most once per window once the table reaches sweep_threshold.
    """

    def __init__(self, max_requests: int, window_seconds: float, sweep_threshold: int = 1024):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_threshold = sweep_threshold
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep: Optional[float] = None
        self._lock = threading.Lock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        self._last_sweep = now
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]

    def allow(self, key: str, now: Optional[float] = None) -> bool:
        now = now if now is not None else time.monotonic()
        with self._lock:
            if len(self._hits) >= self.sweep_threshold and (
                    self._last_sweep is None or now - self._last_sweep >= self.window_seconds):
                self._sweep(now)
            hits = self._hits.get(key)
            if hits is not None:
                self._prune(hits, now)
                if len(hits) >= self.max_requests:
                    return False
            else:
                hits = self._hits[key] = deque()
            hits.append(now)
            return True

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
