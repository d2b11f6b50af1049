"""Webhook inbound system.

Receives payment-provider transaction notifications. Each delivery is
rate-limited per client, signature-verified, and upserted by tx_ref.
"""
