"""Rate limiting module using fixed-window counters.

Enforces per-client request limits keyed by client identifier (forwarded
address or peer host). Counters live behind a `CounterStore` so the default
in-memory map can be replaced without touching `RateLimiter`.

Accuracy is best-effort: state is process-local, and concurrent requests for
the same key may under- or over-count slightly when a compare-and-swap loses
every retry.

Returns standard rate limit metadata for response headers:
- X-RateLimit-Limit
- X-RateLimit-Remaining
- X-RateLimit-Reset
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

from src.config.settings import ProxyConfig

UNKNOWN_CLIENT = "unknown"
FORWARDED_FOR_HEADER = "x-forwarded-for"
CAS_ATTEMPTS = 3


@dataclass(frozen=True)
class ClientWindowCounter:
    count: int
    window_start: float  # monotonic seconds


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: float

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_seconds)),
        }


class CounterStore(ABC):
    """Abstract base for window counter storage."""

    @abstractmethod
    async def get(self, key: str) -> ClientWindowCounter | None:
        """Current counter for key, or None if never seen or expired."""
        ...

    @abstractmethod
    async def compare_and_swap(
        self,
        key: str,
        expected: ClientWindowCounter | None,
        new: ClientWindowCounter,
        ttl_seconds: float,
    ) -> bool:
        """Store `new` only if the current value still equals `expected`.

        The entry may be dropped once `ttl_seconds` have passed since
        `new.window_start`.
        """
        ...


class InMemoryCounterStore(CounterStore):
    """Process-local dict store. Not shared across workers or restarts.

    Expired entries are dropped on access, and a full sweep runs at most
    once per TTL so keys that are never seen again do not accumulate.
    """

    def __init__(self):
        # key -> (counter, expires_at)
        self._counters: dict[str, tuple[ClientWindowCounter, float]] = {}
        self._next_sweep: float = 0.0

    def _live(self, key: str, now: float) -> ClientWindowCounter | None:
        entry = self._counters.get(key)
        if entry is None:
            return None
        counter, expires_at = entry
        if now > expires_at:
            del self._counters[key]
            return None
        return counter

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._counters.items() if now > expires_at]
        for key in expired:
            del self._counters[key]

    async def get(self, key: str) -> ClientWindowCounter | None:
        return self._live(key, time.monotonic())

    async def compare_and_swap(
        self,
        key: str,
        expected: ClientWindowCounter | None,
        new: ClientWindowCounter,
        ttl_seconds: float,
    ) -> bool:
        now = time.monotonic()
        if self._live(key, now) != expected:
            return False
        self._counters[key] = (new, new.window_start + ttl_seconds)
        if now >= self._next_sweep:
            self._sweep(now)
            self._next_sweep = now + ttl_seconds
        return True

    def __len__(self) -> int:
        return len(self._counters)

    def reset(self, key: str) -> None:
        self._counters.pop(key, None)

    def clear(self) -> None:
        self._counters.clear()
        self._next_sweep = 0.0


class RateLimiter:
    """Fixed-window limiter over a CounterStore."""

    def __init__(self, store: CounterStore, max_requests: int, window_ms: int):
        self._store = store
        self.max_requests = max_requests
        self.window_seconds = window_ms / 1000

    def _advance(self, current: ClientWindowCounter | None, now: float) -> ClientWindowCounter:
        if current is None or now - current.window_start > self.window_seconds:
            return ClientWindowCounter(count=1, window_start=now)
        return ClientWindowCounter(count=current.count + 1, window_start=current.window_start)

    async def check(self, client_id: str) -> RateLimitResult:
        """Count this request against client_id's window.

        Args:
            client_id: Rate limit key from `client_identifier`.
        """
        now = time.monotonic()
        updated = None
        for _ in range(CAS_ATTEMPTS):
            current = await self._store.get(client_id)
            updated = self._advance(current, now)
            if await self._store.compare_and_swap(
                client_id, current, updated, self.window_seconds
            ):
                break
        # Lost every race: decide on the last computed value anyway

        reset = max(0.0, updated.window_start + self.window_seconds - now)
        return RateLimitResult(
            allowed=updated.count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - updated.count),
            reset_seconds=round(reset, 1),
        )


def client_identifier(headers: Mapping[str, str], peer_host: str | None) -> str:
    """Derive the rate limit key for a request.

    First entry of X-Forwarded-For, then the transport peer, then "unknown".
    """
    forwarded = headers.get(FORWARDED_FOR_HEADER, "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return peer_host or UNKNOWN_CLIENT


# Process-wide default store
_counter_store = InMemoryCounterStore()


def get_rate_limiter(config: ProxyConfig) -> RateLimiter:
    return RateLimiter(_counter_store, config.rate_limit_max, config.rate_limit_window_ms)


def reset_client(client_key: str) -> None:
    """Clear rate limit state for a client. Useful for testing."""
    _counter_store.reset(client_key)
