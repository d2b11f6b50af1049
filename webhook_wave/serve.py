"""FastAPI application factory and server entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from webhook_wave.config import Settings, get_settings
from webhook_wave.security.rate_limit import RateLimiter
from webhook_wave.webhooks.errors import MalformedRequest
from webhook_wave.webhooks.handlers import WebhookHandler, register_webhook_routes
from webhook_wave.webhooks.store import TransactionStore, build_store

logger = logging.getLogger(__name__)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Routing misses answer like a non-POST delivery: plain 'Not found'.

    405 covers methods outside the route's list (TRACE, WebDAV verbs, ...).
    """
    if exc.status_code in (404, 405):
        return PlainTextResponse(
            MalformedRequest.public_message, status_code=MalformedRequest.status_code
        )
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


def create_app(
    settings: Settings | None = None,
    store: TransactionStore | None = None,
    limiter: RateLimiter | None = None,
) -> FastAPI:
    """Build the webhook app.

    The rate limiter and store client are created in the lifespan (unless
    injected) and shared by every request through ``app.state``.
    """
    settings = settings if settings is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_limiter = limiter if limiter is not None else RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
        app_store = store if store is not None else build_store(settings)
        app.state.limiter = app_limiter
        app.state.store = app_store
        app.state.webhook_handler = WebhookHandler(
            app_limiter,
            app_store,
            settings.flutterwave_secret_hash,
            table=settings.transactions_table,
        )
        if not settings.flutterwave_secret_hash:
            logger.warning("FLUTTERWAVE_SECRET_HASH not set; every delivery will get 401")
        logger.info(
            "Webhook running with rate limiting (%d requests / %.0fs per client, store=%s)",
            app_limiter.max_requests,
            app_limiter.window_seconds,
            type(app_store).__name__,
        )
        try:
            yield
        finally:
            await app_store.aclose()
            logger.info("Webhook shut down")

    app = FastAPI(
        title="webhook-wave",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    register_webhook_routes(app)
    return app


def main() -> None:
    """Run the webhook server with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
