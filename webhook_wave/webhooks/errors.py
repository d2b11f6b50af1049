"""Webhook failure taxonomy.

Each error carries the status code and the fixed body sent to the caller.
The body never varies with the underlying cause; details go to the log.
"""

from __future__ import annotations


class WebhookError(Exception):
    """Base for every failure the request boundary turns into a response."""

    status_code: int = 500
    public_message: str = "Server error"
    outcome: str = "error"


class MalformedRequest(WebhookError):
    """Request is not a webhook delivery (wrong method or path)."""

    status_code = 404
    public_message = "Not found"
    outcome = "not_found"


class AdmissionRejected(WebhookError):
    """Client exceeded its request allowance for the current window."""

    status_code = 429
    public_message = "Too many requests"
    outcome = "rate_limited"


class AuthenticationFailed(WebhookError):
    """Signature missing, malformed, mismatched, or no secret configured."""

    status_code = 401
    public_message = "Invalid signature"
    outcome = "signature_failed"


class InternalFailure(WebhookError):
    """Body read, parse, or store failure."""

    status_code = 500
    public_message = "Server error"
    outcome = "internal_error"


class StoreError(Exception):
    """Transaction store rejected or failed an upsert."""
