"""Tests for src/security/ratelimit.py — fixed window rate limiter."""

from unittest.mock import patch

import pytest

from src.security.ratelimit import (
    ClientWindowCounter,
    InMemoryCounterStore,
    RateLimiter,
    _counter_store,
    client_identifier,
    get_rate_limiter,
    reset_client,
)


@pytest.fixture
def limiter():
    return RateLimiter(InMemoryCounterStore(), max_requests=2, window_ms=1000)


class TestRateLimiter:

    async def test_first_request_allowed(self, limiter):
        result = await limiter.check("client-1")
        assert result.allowed is True
        assert result.remaining == 1
        assert result.limit == 2

    async def test_third_request_in_window_rejected(self, limiter):
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            outcomes = [(await limiter.check("client-1")).allowed for _ in range(3)]
        assert outcomes == [True, True, False]

    async def test_allowed_again_after_window(self, limiter):
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            for _ in range(3):
                await limiter.check("client-1")
        with patch("src.security.ratelimit.time.monotonic", return_value=101.001):
            result = await limiter.check("client-1")
        assert result.allowed is True
        assert result.remaining == 1

    async def test_window_boundary_is_exclusive(self, limiter):
        """Exactly one window later is still the same window."""
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            await limiter.check("client-1")
            await limiter.check("client-1")
        with patch("src.security.ratelimit.time.monotonic", return_value=101.0):
            result = await limiter.check("client-1")
        assert result.allowed is False

    async def test_rejected_requests_still_count(self, limiter):
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            for _ in range(4):
                result = await limiter.check("client-1")
        assert result.allowed is False
        assert result.remaining == 0
        assert result.reset_seconds == 1.0

    async def test_different_clients_independent(self, limiter):
        for _ in range(3):
            await limiter.check("client-a")
        result_b = await limiter.check("client-b")
        assert result_b.allowed is True

    async def test_headers(self, limiter):
        result = await limiter.check("client-1")
        assert result.headers["X-RateLimit-Limit"] == "2"
        assert result.headers["X-RateLimit-Remaining"] == "1"

    async def test_lost_swap_falls_back_to_computed_value(self):
        """A store that never accepts a swap still yields a decision."""

        class StubbornStore(InMemoryCounterStore):
            async def compare_and_swap(self, key, expected, new, ttl_seconds):
                return False

        limiter = RateLimiter(StubbornStore(), max_requests=1, window_ms=1000)
        result = await limiter.check("client-1")
        assert result.allowed is True


class TestInMemoryCounterStore:

    async def test_compare_and_swap_rejects_stale_value(self):
        store = InMemoryCounterStore()
        first = ClientWindowCounter(count=1, window_start=100.0)
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            assert await store.compare_and_swap("k", None, first, 60.0) is True
            stale = await store.compare_and_swap(
                "k", None, ClientWindowCounter(count=1, window_start=100.0), 60.0
            )
            assert stale is False
            assert await store.get("k") == first

    async def test_expired_entry_reads_as_absent(self):
        store = InMemoryCounterStore()
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            await store.compare_and_swap("k", None, ClientWindowCounter(1, 100.0), 1.0)
        with patch("src.security.ratelimit.time.monotonic", return_value=101.5):
            assert await store.get("k") is None
        assert len(store) == 0

    async def test_idle_keys_swept(self):
        """Keys that are never seen again are dropped by the periodic sweep."""
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, max_requests=2, window_ms=1000)
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            for i in range(50):
                await limiter.check(f"198.51.100.{i}")
        assert len(store) == 50

        with patch("src.security.ratelimit.time.monotonic", return_value=102.0):
            await limiter.check("203.0.113.9")
        assert len(store) == 1
        assert await store.get("198.51.100.0") is None

    async def test_live_keys_survive_sweep(self):
        store = InMemoryCounterStore()
        limiter = RateLimiter(store, max_requests=2, window_ms=1000)
        with patch("src.security.ratelimit.time.monotonic", return_value=100.0):
            await limiter.check("old")
        with patch("src.security.ratelimit.time.monotonic", return_value=100.9):
            await limiter.check("recent")
        with patch("src.security.ratelimit.time.monotonic", return_value=101.5):
            await limiter.check("new")
        assert await store.get("old") is None
        with patch("src.security.ratelimit.time.monotonic", return_value=101.5):
            assert await store.get("recent") == ClientWindowCounter(1, 100.9)


class TestClientIdentifier:

    def test_forwarded_for_first_entry(self):
        assert client_identifier({"x-forwarded-for": "203.0.113.5, 10.0.0.1"}, "10.0.0.2") == "203.0.113.5"

    def test_peer_host_fallback(self):
        assert client_identifier({}, "10.0.0.2") == "10.0.0.2"

    def test_unknown_sentinel(self):
        assert client_identifier({"x-forwarded-for": " "}, None) == "unknown"


class TestDefaultLimiter:

    async def test_uses_shared_store(self, proxy_config):
        await get_rate_limiter(proxy_config).check("client-1")
        assert await _counter_store.get("client-1") is not None

    async def test_reset_clears_state(self, proxy_config):
        await get_rate_limiter(proxy_config).check("client-1")
        reset_client("client-1")
        assert await _counter_store.get("client-1") is None

    async def test_reset_nonexistent_client(self):
        """Resetting unknown client should not raise."""
        reset_client("nonexistent")
