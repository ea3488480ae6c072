"""Shared fixtures for the webhook proxy test suite."""

import json

import httpx
import pytest

import src.proxy.forwarder as forwarder_mod
from src.config.settings import ProxyConfig, get_proxy_config, get_settings
from src.proxy.forwarder import Forwarder
from src.security.ratelimit import _counter_store

UPSTREAM_URL = "https://hooks.example.com/webhook/abc"
SECRET = "s3cret-value"


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    """Fresh counters and no shared forwarder for every test."""
    _counter_store.clear()
    monkeypatch.setattr(forwarder_mod, "_forwarder", None)
    yield
    _counter_store.clear()


@pytest.fixture
def proxy_config() -> ProxyConfig:
    """A complete config with a small rate limit."""
    return ProxyConfig(
        upstream_url=UPSTREAM_URL,
        proxy_secret=SECRET,
        rate_limit_max=5,
        rate_limit_window_ms=60_000,
        forward_timeout_ms=1_000,
    )


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings caches.

    Usage:
        override_settings(UPSTREAM_URL="https://...", PROXY_SECRET="x")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()
        get_proxy_config.cache_clear()

    yield _override

    get_settings.cache_clear()
    get_proxy_config.cache_clear()


class RecordingUpstream:
    """MockTransport handler that records requests and replays a canned reply."""

    def __init__(self, status_code: int = 200, content: bytes | str = b'{"ok": true}',
                 content_type: str = "application/json"):
        self.status_code = status_code
        self.content = content.encode() if isinstance(content, str) else content
        self.content_type = content_type
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=self.content,
            headers={"Content-Type": self.content_type},
        )

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def upstream(monkeypatch) -> RecordingUpstream:
    """Install a recording upstream behind the shared forwarder."""
    recorder = RecordingUpstream()
    monkeypatch.setattr(
        forwarder_mod, "_forwarder", Forwarder(transport=httpx.MockTransport(recorder))
    )
    return recorder
