# src/analyzer/utils/deadline.py
import time
from typing import Optional


class Deadline:
    """
    A shared wall-clock budget. Workers ask it whether time is left before
    starting new work, and cap their own per-request timeouts with it.
    """

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds

    @property
    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining <= 0.0

    def cap(self, timeout: float) -> Optional[float]:
        """Returns min(timeout, remaining), or None once the deadline has passed."""
        remaining = self.remaining
        if remaining <= 0.0:
            return None
        return min(timeout, remaining)

    def __repr__(self) -> str:
        return f"<Deadline remaining={self.remaining:.2f}s of {self.seconds:.2f}s>"
