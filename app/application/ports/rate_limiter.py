from typing import Protocol


class RateLimiter(Protocol):
    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Count one request for `key` (e.g. "ip:10.0.0.1"); False once `max_requests` is exceeded in the window."""
        ...
