"""webhook-wave: payment-provider webhook ingestion.

Receives Flutterwave-style transaction notifications, throttles per client,
verifies the HMAC signature, and upserts the transaction state by tx_ref.
"""

__version__ = "0.1.0"
