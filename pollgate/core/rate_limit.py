"""Client IP extraction and request throttling.

Three mechanisms live here:

* ``SlidingWindowRateLimiter`` - the per-IP sliding window that gates vote
  submissions and the admin summary. Windows are kept in process memory and
  serialized per key through a fixed set of striped locks, so requests from
  unrelated IPs never wait on each other.
* ``StorageRateLimiter`` - the same interface over a ``limits`` storage
  backend (Redis, Memcached, ...), so every worker process shares one window
  per key. Selected with ``RATE_LIMIT_STORAGE_URI``.
* ``limiter`` - a slowapi ``Limiter`` used as a coarse throttle on token
  issuance.

NOTE: without ``RATE_LIMIT_STORAGE_URI`` each worker process holds its own
windows, so an N-worker deployment admits up to N times the configured limit.
"""

import ipaddress
import logging
import math
import threading
import time
from collections import deque
from collections.abc import Callable
from functools import lru_cache

from fastapi import Request, Response
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from pollgate.core.config import get_settings
from pollgate.core.time import epoch_millis

logger = logging.getLogger(__name__)

MAX_CLIENT_IP_LENGTH = 64


@lru_cache(maxsize=1)
def _get_trusted_proxies() -> tuple[
    bool,
    frozenset[str],
    tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...],
]:
    """Return (trust_all, exact IPs, CIDR networks) from settings (cached)."""
    settings = get_settings()
    trust_all = False
    exact = set()
    networks = []
    for entry in settings.trusted_proxies.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if entry == "*":
            trust_all = True
        elif "/" in entry:
            networks.append(ipaddress.ip_network(entry, strict=False))
        else:
            exact.add(entry)
    return trust_all, frozenset(exact), tuple(networks)


def _is_trusted_proxy(ip: str) -> bool:
    """Check if an IP is in the trusted proxies list (wildcard, exact match or CIDR)."""
    trust_all, exact, networks = _get_trusted_proxies()
    if trust_all or ip in exact:
        return True
    if networks:
        try:
            addr = ipaddress.ip_address(ip)
            return any(addr in net for net in networks)
        except ValueError:
            return False
    return False


def get_client_ip(request: Request) -> str:
    """Get the client IP a vote is attributed to.

    Priority:
    1. X-Forwarded-For first entry (only if direct connection is a trusted proxy)
    2. X-Real-IP (only if direct connection is a trusted proxy)
    3. Direct connection IP

    The result is truncated to ``MAX_CLIENT_IP_LENGTH`` characters.
    """
    direct_ip = get_remote_address(request) or "unknown"

    if _is_trusted_proxy(direct_ip):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first[:MAX_CLIENT_IP_LENGTH]

        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()[:MAX_CLIENT_IP_LENGTH]

    return direct_ip[:MAX_CLIENT_IP_LENGTH]


class SlidingWindowRateLimiter:
    """Per-key sliding window: at most ``max_requests`` hits per trailing window.

    A denied call is not recorded, so a client that keeps hammering the
    endpoint regains access as soon as its oldest admitted hit ages out.
    """

    STRIPES = 64

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], int] = epoch_millis,
    ) -> None:
        self.max_requests = max_requests
        self.window_ms = int(window_seconds * 1000)
        self._clock = clock
        self._windows: dict[str, deque[int]] = {}
        self._stripes = [threading.Lock() for _ in range(self.STRIPES)]
        self._cleanup_lock = threading.Lock()
        self._last_cleanup = clock()

    def _stripe_for(self, key: str) -> threading.Lock:
        return self._stripes[hash(key) % self.STRIPES]

    def _prune(self, window: deque[int], now: int) -> None:
        cutoff = now - self.window_ms
        while window and window[0] <= cutoff:
            window.popleft()

    def allow(self, key: str) -> bool:
        """Record a hit for ``key`` and return True, or return False if over the limit."""
        now = self._clock()
        self._maybe_cleanup(now)

        with self._stripe_for(key):
            window = self._windows.setdefault(key, deque())
            self._prune(window, now)
            if len(window) >= self.max_requests:
                return False
            window.append(now)
            return True

    def remaining(self, key: str) -> int:
        """Return how many hits ``key`` has left in the current window."""
        now = self._clock()
        with self._stripe_for(key):
            window = self._windows.get(key)
            if window is None:
                return self.max_requests
            self._prune(window, now)
            return max(self.max_requests - len(window), 0)

    def retry_after_seconds(self, key: str) -> int:
        """Seconds until the oldest hit for ``key`` leaves the window (0 if not limited)."""
        now = self._clock()
        with self._stripe_for(key):
            window = self._windows.get(key)
            if not window:
                return 0
            self._prune(window, now)
            if len(window) < self.max_requests:
                return 0
            wait_ms = window[0] + self.window_ms - now
        return max(1, -(-wait_ms // 1000))

    def _maybe_cleanup(self, now: int) -> None:
        """Drop windows that have fully aged out, at most once per window length."""
        if now - self._last_cleanup < self.window_ms:
            return
        if not self._cleanup_lock.acquire(blocking=False):
            return
        try:
            self._last_cleanup = now
            for key in list(self._windows):
                with self._stripe_for(key):
                    window = self._windows.get(key)
                    if window is None:
                        continue
                    self._prune(window, now)
                    if not window:
                        del self._windows[key]
        finally:
            self._cleanup_lock.release()

    def tracked_keys(self) -> int:
        """Number of keys currently holding a window."""
        return len(self._windows)

    def reset(self) -> None:
        """Forget every window."""
        with self._cleanup_lock:
            for key in list(self._windows):
                with self._stripe_for(key):
                    self._windows.pop(key, None)


class StorageRateLimiter:
    """Moving-window limiter backed by a ``limits`` storage URI.

    Drop-in for ``SlidingWindowRateLimiter``. A denied hit is not recorded.
    If the storage cannot be reached the call is answered by an in-process
    window instead, so ``allow`` never raises.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        storage_uri: str,
        namespace: str = "pollgate",
    ) -> None:
        self.max_requests = max_requests
        self.namespace = namespace
        self._item = RateLimitItemPerSecond(max_requests, int(window_seconds))
        self._storage = storage_from_string(storage_uri)
        self._strategy = MovingWindowRateLimiter(self._storage)
        self._fallback = SlidingWindowRateLimiter(max_requests, window_seconds)

    def allow(self, key: str) -> bool:
        try:
            return self._strategy.hit(self._item, self.namespace, key)
        except Exception:
            logger.warning(
                "Rate limit storage unavailable, using in-process window (%s)",
                self.namespace,
                exc_info=True,
            )
            return self._fallback.allow(key)

    def remaining(self, key: str) -> int:
        try:
            stats = self._strategy.get_window_stats(self._item, self.namespace, key)
        except Exception:
            logger.warning("Rate limit storage unavailable (%s)", self.namespace, exc_info=True)
            return self._fallback.remaining(key)
        return max(stats.remaining, 0)

    def retry_after_seconds(self, key: str) -> int:
        try:
            stats = self._strategy.get_window_stats(self._item, self.namespace, key)
        except Exception:
            logger.warning("Rate limit storage unavailable (%s)", self.namespace, exc_info=True)
            return self._fallback.retry_after_seconds(key)
        if stats.remaining > 0:
            return 0
        return max(1, math.ceil(stats.reset_time - time.time()))

    def reset(self) -> None:
        """Forget every window held by the storage and the fallback."""
        self._storage.reset()
        self._fallback.reset()


RateLimiter = SlidingWindowRateLimiter | StorageRateLimiter


def build_rate_limiter(
    max_requests: int, window_seconds: float, storage_uri: str = "", namespace: str = "pollgate"
) -> RateLimiter:
    """Shared-storage limiter when ``storage_uri`` is set, in-process windows otherwise."""
    if storage_uri:
        return StorageRateLimiter(max_requests, window_seconds, storage_uri, namespace)
    return SlidingWindowRateLimiter(max_requests, window_seconds)


_settings = get_settings()

# Vote submission: 5 per hour per IP by default
vote_rate_limiter = build_rate_limiter(
    _settings.vote_rate_limit_max,
    _settings.vote_rate_limit_window_seconds,
    _settings.rate_limit_storage_uri,
    namespace="vote",
)

# Admin summary: 60 per minute per IP by default
summary_rate_limiter = build_rate_limiter(
    _settings.summary_rate_limit_max,
    _settings.summary_rate_limit_window_seconds,
    _settings.rate_limit_storage_uri,
    namespace="summary",
)

# Coarse throttle for token issuance, keyed by the same client IP
limiter = Limiter(
    key_func=get_client_ip,
    enabled=_settings.is_rate_limit_enabled,
    storage_uri=_settings.rate_limit_storage_uri or "memory://",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Custom handler for slowapi rate limit exceeded errors."""
    retry_after = 60
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "reason": "rate_limited",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
