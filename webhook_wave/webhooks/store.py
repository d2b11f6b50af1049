"""Transaction store clients: upsert-by-tx_ref, last write wins.

Backends:
- SupabaseTransactionStore: PostgREST upsert over httpx (default)
- PostgresTransactionStore: INSERT ... ON CONFLICT via psycopg
- InMemoryTransactionStore: process-local dict, for development and tests

Every backend raises StoreError on failure. No retries here; the provider
redelivers on a non-2xx response.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Protocol, runtime_checkable

import httpx
import psycopg
from psycopg import sql

from webhook_wave.config import Settings
from webhook_wave.webhooks.errors import StoreError
from webhook_wave.webhooks.models import TransactionRecord

logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"


@runtime_checkable
class TransactionStore(Protocol):
    """Upsert-capable store keyed by tx_ref."""

    async def upsert(
        self, record: TransactionRecord, table: str = TRANSACTIONS_TABLE
    ) -> None:
        """Insert or overwrite the row for ``record.tx_ref``."""
        ...

    async def aclose(self) -> None:
        """Release connections held by the client."""
        ...


class SupabaseTransactionStore:
    """Supabase (PostgREST) store using the anon/service key.

    Sends ``POST /rest/v1/<table>?on_conflict=tx_ref`` with
    ``Prefer: resolution=merge-duplicates`` so an existing row is replaced.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not url:
            raise ValueError("SUPABASE_URL is required for the supabase store")
        self._client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Prefer": "resolution=merge-duplicates,return=minimal",
            },
            timeout=timeout,
            transport=transport,
        )

    async def upsert(
        self, record: TransactionRecord, table: str = TRANSACTIONS_TABLE
    ) -> None:
        try:
            response = await self._client.post(
                f"/{table}",
                params={"on_conflict": "tx_ref"},
                json=[record.to_row()],
            )
        except httpx.HTTPError as e:
            raise StoreError(f"Supabase upsert failed for {record.tx_ref}: {e}") from e

        if not response.is_success:
            raise StoreError(
                f"Supabase upsert failed for {record.tx_ref}: "
                f"HTTP {response.status_code} {response.text[:200]}"
            )
        logger.debug("Upserted %s into %s (supabase)", record.tx_ref, table)

    async def aclose(self) -> None:
        await self._client.aclose()


class PostgresTransactionStore:
    """Direct Postgres store. Blocking psycopg calls run in a worker thread."""

    _UPSERT = sql.SQL(
        """
        INSERT INTO {table} (tx_ref, amount, status, processed_at)
        VALUES (%(tx_ref)s, %(amount)s, %(status)s, %(processed_at)s)
        ON CONFLICT (tx_ref) DO UPDATE SET
            amount = EXCLUDED.amount,
            status = EXCLUDED.status,
            processed_at = EXCLUDED.processed_at
        """
    )

    _CREATE = sql.SQL(
        """
        CREATE TABLE IF NOT EXISTS {table} (
            tx_ref       TEXT PRIMARY KEY,
            amount       NUMERIC NOT NULL,
            status       TEXT NOT NULL,
            processed_at TIMESTAMPTZ NOT NULL
        )
        """
    )

    def __init__(self, dsn: str):
        if not dsn:
            raise ValueError("DATABASE_URL is required for the postgres store")
        self._dsn = dsn

    def _connect(self) -> psycopg.Connection:
        return psycopg.connect(self._dsn, autocommit=True)

    def ensure_schema(self, table: str = TRANSACTIONS_TABLE) -> None:
        """Create the transactions table if it doesn't exist. Idempotent."""
        with self._connect() as conn:
            conn.execute(self._CREATE.format(table=sql.Identifier(table)))

    def _upsert_sync(self, record: TransactionRecord, table: str) -> None:
        params = record.to_row()
        params["processed_at"] = record.processed_at
        with self._connect() as conn:
            conn.execute(self._UPSERT.format(table=sql.Identifier(table)), params)

    async def upsert(
        self, record: TransactionRecord, table: str = TRANSACTIONS_TABLE
    ) -> None:
        try:
            await asyncio.to_thread(self._upsert_sync, record, table)
        except psycopg.Error as e:
            raise StoreError(f"Postgres upsert failed for {record.tx_ref}: {e}") from e
        logger.debug("Upserted %s into %s (postgres)", record.tx_ref, table)

    async def aclose(self) -> None:
        return None


class InMemoryTransactionStore:
    """Process-local store. Holds the latest record per (table, tx_ref)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: dict[str, dict[str, TransactionRecord]] = {}

    async def upsert(
        self, record: TransactionRecord, table: str = TRANSACTIONS_TABLE
    ) -> None:
        with self._lock:
            self._tables.setdefault(table, {})[record.tx_ref] = record

    def get(self, tx_ref: str, table: str = TRANSACTIONS_TABLE) -> TransactionRecord | None:
        with self._lock:
            return self._tables.get(table, {}).get(tx_ref)

    def records(self, table: str = TRANSACTIONS_TABLE) -> list[TransactionRecord]:
        with self._lock:
            return list(self._tables.get(table, {}).values())

    def __len__(self) -> int:
        with self._lock:
            return sum(len(rows) for rows in self._tables.values())

    async def aclose(self) -> None:
        return None


def build_store(settings: Settings) -> TransactionStore:
    """Construct the store selected by ``settings.store_backend``."""
    backend = settings.store_backend
    if backend == "supabase":
        return SupabaseTransactionStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.store_timeout_seconds,
        )
    if backend == "postgres":
        return PostgresTransactionStore(settings.database_url)
    if backend == "memory":
        logger.warning("Using in-memory transaction store; records are not persisted")
        return InMemoryTransactionStore()
    raise ValueError(f"Unknown store backend: {backend}")
