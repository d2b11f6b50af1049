"""Admission control for inbound webhook traffic."""

from webhook_wave.security.rate_limit import RateLimiter, client_key_from_headers

__all__ = ["RateLimiter", "client_key_from_headers"]
