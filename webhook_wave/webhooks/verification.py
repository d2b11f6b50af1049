"""Webhook signature verification: constant-time HMAC-SHA256.

Security contract:
- Digest is computed over the raw body exactly as received, never over a
  re-serialized form
- Comparison uses hmac.compare_digest() (constant-time, no timing attacks)
- Missing secret -> verification always fails (fail-closed)
- Missing, malformed or wrong-length signatures -> False, never an exception
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

# Header the provider puts the signature in
SIGNATURE_HEADER = "verif-hash"

# Optional prefix some senders put in front of the hex digest
SIGNATURE_PREFIX = "sha256="


def _digest(raw_body: str | bytes, secret: str) -> bytes:
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()


def compute_signature(raw_body: str | bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``raw_body`` keyed by ``secret``."""
    return _digest(raw_body, secret).hex()


def _decode_signature(signature_header: str) -> bytes | None:
    """Strip the optional prefix and hex-decode. None if not valid hex."""
    encoded = signature_header.removeprefix(SIGNATURE_PREFIX)
    try:
        return binascii.unhexlify(encoded)
    except (binascii.Error, ValueError):
        return None


def verify_signature(
    signature_header: str | None,
    raw_body: str | bytes,
    secret: str | None,
) -> bool:
    """Verify a ``verif-hash`` signature against the raw request body.

    Args:
        signature_header: Header value, optionally prefixed ``sha256=``
        raw_body: Request body as received (text is UTF-8 encoded)
        secret: Shared secret configured with the provider

    Returns:
        True only if the header decodes to exactly HMAC-SHA256(body, secret)
    """
    if not secret:
        logger.debug("FLUTTERWAVE_SECRET_HASH not set, rejecting webhook")
        return False
    if not signature_header:
        return False

    provided = _decode_signature(signature_header)
    if not provided:
        return False

    expected = _digest(raw_body, secret)

    # compare_digest is length-safe: a truncated signature simply mismatches
    return hmac.compare_digest(expected, provided)
