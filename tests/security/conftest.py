"""Security test fixtures.

Responsibilities:
- Creates the FastAPI `app` fixture with an in-memory store and a fake-clock limiter
- Wraps it in `client` (TestClient, lifespan running, server exceptions as 500s)
- Provides `deliver` for posting signed webhook deliveries
- Scoped to tests/security/ only
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from webhook_wave.serve import create_app


@pytest.fixture
def app(settings, memory_store, limiter):
    """Webhook app with injected collaborators (no network, no database)."""
    return create_app(settings, store=memory_store, limiter=limiter)


@pytest.fixture
def client(app):
    """TestClient from the caller's perspective."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def deliver(client, signer):
    """POST a delivery signed with the test secret.

    ``payload`` may be a dict (JSON-encoded) or raw bytes/str sent as-is.
    """

    def _deliver(payload, *, signature: str | None = None, headers: dict | None = None):
        if isinstance(payload, dict):
            body = json.dumps(payload).encode()
        elif isinstance(payload, str):
            body = payload.encode()
        else:
            body = payload
        sent_headers = {
            "Content-Type": "application/json",
            "verif-hash": signature if signature is not None else signer(body),
        }
        sent_headers.update(headers or {})
        return client.post("/", content=body, headers=sent_headers)

    return _deliver


@pytest.fixture
def tx_payload():
    """Factory for a well-formed provider notification."""

    def _make(tx_ref: str = "TX1", amount=500, status: str = "successful") -> dict:
        return {
            "event": "charge.completed",
            "data": {"tx_ref": tx_ref, "amount": amount, "status": status},
        }

    return _make
