import threading
import time
from collections import defaultdict, deque


class RateLimiter:
    """
    In-process sliding-window limiter.
    Each (bucket, key) pair keeps the monotonic timestamps of its recent hits.
    State lives only as long as the process.
    """

    def __init__(self) -> None:
        self._windows: dict[tuple[str, str], deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def is_allowed(self, bucket: str, key: str, limit: int, window_seconds: float) -> bool:
        now = time.monotonic()
        with self._lock:
            window = self._windows[(bucket, key)]

            # Purge entries that slid out of the window
            while window and window[0] <= now - window_seconds:
                window.popleft()

            if len(window) >= limit:
                return False

            window.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
