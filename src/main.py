"""Webhook Proxy — FastAPI application entry point.

A secret-gated proxy that sits between a browser client and a single
upstream automation webhook, hiding the webhook address and any internal
credential from the browser.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response

from src.config.settings import ProxyConfig, get_proxy_config, get_settings
from src.logging.audit import get_audit_logger, setup_logging
from src.proxy.forwarder import close_forwarder
from src.proxy.handler import handle_proxy_request
from src.security.cors import preflight_response

VERSION = "1.0.0"
PROXY_PATH = "/api/proxy"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    config = get_proxy_config()
    logger = get_audit_logger()
    if config.is_complete:
        logger.info("Proxy started")
    else:
        logger.error("Proxy started without UPSTREAM_URL or PROXY_SECRET; requests will fail")
    yield
    await close_forwarder()
    logger.info("Proxy stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Webhook Proxy",
        description="Secret-gated forwarding proxy for a single upstream webhook",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION}

    @app.options(PROXY_PATH)
    async def proxy_preflight(request: Request, config: ProxyConfig = Depends(get_proxy_config)):
        """CORS preflight. No config, secret or size checks run here."""
        return preflight_response(request.headers.get("origin"), config)

    async def proxy(request: Request) -> Response:
        return await handle_proxy_request(request, get_proxy_config())

    # Starlette route without a method list: every method other than the
    # OPTIONS route above (HEAD, TRACE, WebDAV verbs, ...) reaches the gate.
    app.add_route(PROXY_PATH, proxy, include_in_schema=False)

    if settings.debug_endpoint_enabled:
        from src.debug.introspect import debug_router
        app.include_router(debug_router)

    return app


app = create_app()
