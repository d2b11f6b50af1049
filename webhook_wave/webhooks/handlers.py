"""Webhook HTTP handler: admission, verification, and transaction upsert.

Each request:
1. Method gate: only POST is a delivery (anything else -> 404)
2. Rate limit by client key (-> 429)
3. Reads raw body (needed for HMAC verification)
4. Verifies the verif-hash signature (-> 401)
5. Parses the payload and upserts the transaction by tx_ref
6. Returns 200 "OK"

Security contract:
- Never return error details to the webhook caller (info disclosure)
- Missing signature, bad signature and unset secret all look the same (401)
- Any unexpected failure after admission is a generic 500; the cause is logged
- Exactly one response per request, one audit line per request
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from webhook_wave.security.rate_limit import RateLimiter, client_key_from_headers
from webhook_wave.webhooks.errors import (
    AdmissionRejected,
    AuthenticationFailed,
    InternalFailure,
    MalformedRequest,
    WebhookError,
)
from webhook_wave.webhooks.models import TransactionRecord, WebhookPayload
from webhook_wave.webhooks.store import TRANSACTIONS_TABLE, TransactionStore
from webhook_wave.webhooks.verification import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/"

# Every method is routed to the handler so non-POST gets the same plain 404
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _log_webhook(client_key: str, tx_ref: str | None, outcome: str, status: int) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT client=%s tx_ref=%s outcome=%s status=%d",
        client_key,
        tx_ref or "-",
        outcome,
        status,
    )


class WebhookHandler:
    """Request pipeline shared by all concurrent deliveries.

    Holds the process-wide rate limiter and store client; both are owned
    by the application lifespan, not by this class.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        store: TransactionStore,
        secret: str,
        table: str = TRANSACTIONS_TABLE,
    ):
        self._limiter = limiter
        self._store = store
        self._secret = secret
        self._table = table

    async def handle(self, request: Request) -> PlainTextResponse:
        """Run the pipeline and map its result to exactly one response."""
        start = time.time()
        client_key = client_key_from_headers(request.headers)
        tx_ref: str | None = None

        try:
            if request.method != "POST":
                raise MalformedRequest(request.method)

            if not self._limiter.check(client_key):
                logger.warning("Rate limit exceeded for client: %s", client_key)
                raise AdmissionRejected(client_key)

            raw_body = await request.body()

            signature = request.headers.get(SIGNATURE_HEADER)
            if not verify_signature(signature, raw_body, self._secret):
                raise AuthenticationFailed()

            payload = WebhookPayload.model_validate_json(raw_body)
            record = TransactionRecord.from_payload(payload)
            tx_ref = record.tx_ref

            await self._store.upsert(record, self._table)
        except WebhookError as e:
            error = e
        except Exception:
            logger.exception(
                "Webhook processing failed: client=%s tx_ref=%s",
                client_key,
                tx_ref or "-",
            )
            error = InternalFailure()
        else:
            _log_webhook(client_key, tx_ref, "stored", 200)
            elapsed_ms = (time.time() - start) * 1000
            logger.debug("Webhook processed in %.1fms: %s", elapsed_ms, tx_ref)
            return PlainTextResponse("OK", status_code=200)

        _log_webhook(client_key, tx_ref, error.outcome, error.status_code)
        return PlainTextResponse(error.public_message, status_code=error.status_code)


def register_webhook_routes(app: FastAPI, path: str = WEBHOOK_PATH) -> None:
    """Register the webhook endpoint. The handler is read from app.state."""

    @app.api_route(path, methods=ALL_METHODS, include_in_schema=False)
    async def receive_webhook(request: Request):
        """Receive provider webhooks (rate-limited, signature-verified)."""
        handler: WebhookHandler = request.app.state.webhook_handler
        return await handler.handle(request)

    logger.info("Webhook route registered: %s", path)
