"""Shared fixtures for the webhook-wave test suite."""

from __future__ import annotations

import hashlib
import hmac

import pytest

from webhook_wave.config import Settings
from webhook_wave.security.rate_limit import RateLimiter
from webhook_wave.webhooks.store import InMemoryTransactionStore

SECRET = "flw-test-secret"


class FakeClock:
    """Manually advanced monotonic clock for rate-window tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sign(body: bytes | str, secret: str = SECRET) -> str:
    """Compute a valid verif-hash value for ``body``."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture()
def secret() -> str:
    return SECRET


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(max_requests=100, window_seconds=60.0, clock=clock)


@pytest.fixture()
def memory_store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


@pytest.fixture()
def settings() -> Settings:
    """Settings isolated from the process environment and any .env file."""
    return Settings(
        _env_file=None,
        flutterwave_secret_hash=SECRET,
        store_backend="memory",
    )


@pytest.fixture()
def signer():
    """The ``sign`` helper, for tests that build their own deliveries."""
    return sign
