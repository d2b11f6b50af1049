"""Webhook payload and stored transaction shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, StrictFloat, StrictInt


class TransactionData(BaseModel):
    """The ``data`` object of a provider notification (fields we persist)."""

    tx_ref: str
    amount: StrictInt | StrictFloat
    status: str

    model_config = {"extra": "ignore"}


class WebhookPayload(BaseModel):
    """Top-level notification body. Anything besides ``data`` is ignored."""

    data: TransactionData

    model_config = {"extra": "ignore"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransactionRecord:
    """One reported payment event, keyed by the provider's tx_ref."""

    tx_ref: str
    amount: int | float
    status: str
    processed_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_payload(cls, payload: WebhookPayload) -> TransactionRecord:
        return cls(
            tx_ref=payload.data.tx_ref,
            amount=payload.data.amount,
            status=payload.data.status,
        )

    def to_row(self) -> dict[str, Any]:
        """Column mapping sent to the store; processed_at as ISO-8601."""
        return {
            "tx_ref": self.tx_ref,
            "amount": self.amount,
            "status": self.status,
            "processed_at": self.processed_at.isoformat(),
        }
