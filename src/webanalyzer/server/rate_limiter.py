# src/webanalyzer/server/rate_limiter.py
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: float
    last_seen: float


class RateLimiter:
    """
    Per-client token bucket limiter.

    Each client may burst up to `burst` requests and regains `rate` requests
    per second. Clients idle for longer than `idle_ttl` seconds are evicted.
    One instance is created per application and shared by all request threads.
    """

    def __init__(
            self,
            rate: float = 1.0,
            burst: int = 3,
            idle_ttl: float = 300.0,
            sweep_interval: float = 60.0,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.rate = float(rate)
        self.burst = max(1, int(burst))
        self.idle_ttl = idle_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def allow(self, client: str) -> bool:
        """Consumes one token for `client`; False when the client is over its limit."""
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.sweep_interval:
                self._evict_idle(now)

            bucket = self._buckets.get(client)
            if bucket is None:
                bucket = self._buckets[client] = _Bucket(tokens=float(self.burst), last_seen=now)
            else:
                elapsed = max(0.0, now - bucket.last_seen)
                bucket.tokens = min(float(self.burst), bucket.tokens + elapsed * self.rate)
                bucket.last_seen = now

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return True

        logger.info("Rate limit exceeded for client %s", client)
        return False

    def _evict_idle(self, now: float) -> None:
        stale = [c for c, b in self._buckets.items() if now - b.last_seen > self.idle_ttl]
        for client in stale:
            del self._buckets[client]
        self._last_sweep = now
        if stale:
            logger.debug("Evicted %d idle rate-limit entries.", len(stale))

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)
