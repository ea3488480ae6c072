"""Application settings loaded from environment variables.

`Settings` is the raw environment view. `ProxyConfig` is the frozen object
the request pipeline consumes; components never read `Settings` directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_MAX_PAYLOAD_BYTES = 200_000


class Settings(BaseSettings):
    # Upstream webhook and the secret browsers must present.
    # Both may be empty at startup; requests then fail with 500.
    upstream_url: str = ""
    proxy_secret: str = ""

    # Optional credential attached to outbound calls
    internal_auth_token: str = ""
    internal_auth_mode: Literal["header", "query"] = "header"
    internal_auth_header: str = "X-Internal-Auth"
    internal_auth_param: str = "token"

    # Rate limiting (fixed window, per client identifier)
    rate_limit_max: int = Field(default=20, gt=0)
    rate_limit_window_ms: int = Field(default=60_000, gt=0)

    # Forwarding
    forward_timeout_ms: int = Field(default=30_000, gt=0)
    allowed_origins: str = "*"  # Comma-separated
    max_payload_bytes: int = Field(default=DEFAULT_MAX_PAYLOAD_BYTES, gt=0)
    proxy_marker: str = "webhook-proxy"

    # Introspection route, never enable in production
    debug_endpoint_enabled: bool = False

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    # Lambda deployments behind an API Gateway stage
    api_gateway_base_path: str = "/"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins, dropping blanks."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    def to_proxy_config(self) -> "ProxyConfig":
        return ProxyConfig(
            upstream_url=self.upstream_url.strip(),
            proxy_secret=self.proxy_secret,
            internal_auth_token=self.internal_auth_token,
            internal_auth_mode=self.internal_auth_mode,
            internal_auth_header=self.internal_auth_header,
            internal_auth_param=self.internal_auth_param,
            rate_limit_max=self.rate_limit_max,
            rate_limit_window_ms=self.rate_limit_window_ms,
            forward_timeout_ms=self.forward_timeout_ms,
            allowed_origins=tuple(self.allowed_origins_list),
            max_payload_bytes=self.max_payload_bytes,
            proxy_marker=self.proxy_marker,
        )


@dataclass(frozen=True)
class ProxyConfig:
    """Immutable configuration shared by every request."""

    upstream_url: str
    proxy_secret: str
    internal_auth_token: str = ""
    internal_auth_mode: str = "header"  # "header" | "query"
    internal_auth_header: str = "X-Internal-Auth"
    internal_auth_param: str = "token"
    rate_limit_max: int = 20
    rate_limit_window_ms: int = 60_000
    forward_timeout_ms: int = 30_000
    allowed_origins: tuple[str, ...] = ("*",)
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    proxy_marker: str = "webhook-proxy"

    @property
    def is_complete(self) -> bool:
        """True when both the upstream URL and the secret are set."""
        return bool(self.upstream_url) and bool(self.proxy_secret)

    @property
    def forward_timeout_seconds(self) -> float:
        return self.forward_timeout_ms / 1000


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_proxy_config() -> ProxyConfig:
    return get_settings().to_proxy_config()
