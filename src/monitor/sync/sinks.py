"""RemoteSink backends for the sync scheduler.

Every backend implements create-or-overwrite semantics on a single
(collection_id, document_id) identity, so repeated writes never build up
history:

    InMemorySink  — dict-backed, for local development and tests
    FirestoreSink — Firestore REST API, ``PATCH`` of the document
    PostgresSink  — Supabase Postgres, ``INSERT ... ON CONFLICT DO UPDATE``
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

import asyncpg
import httpx

from src.config import Settings, get_settings
from src.monitor.base import RemoteSink, SinkError
from src.services import supabase

logger = logging.getLogger("pulsewatch.monitor.sync.sinks")


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemorySink(RemoteSink):
    """Keeps the latest fields per document identity in a dict."""

    name = "memory"

    def __init__(self) -> None:
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.write_count = 0

    async def upsert(
        self, collection_id: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        self.documents[(collection_id, document_id)] = dict(fields)
        self.write_count += 1

    def get(self, collection_id: str, document_id: str) -> dict[str, Any] | None:
        return self.documents.get((collection_id, document_id))


# ---------------------------------------------------------------------------
# Firestore REST
# ---------------------------------------------------------------------------


def _firestore_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def encode_firestore_value(value: Any) -> dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value`` object.

    Raises:
        TypeError: If the value has no Firestore representation.
    """
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # int64 values travel as strings in the JSON mapping
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": _firestore_timestamp(value)}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_firestore_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_firestore_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_firestore_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_firestore_value(val) for key, val in fields.items()}


class FirestoreSink(RemoteSink):
    """Write documents through the Firestore REST API.

    A ``PATCH`` without an update mask replaces the whole document and
    creates it if it does not exist.
    """

    name = "firestore"

    def __init__(
        self,
        project_id: str,
        access_token: str,
        *,
        base_url: str = "https://firestore.googleapis.com/v1",
        timeout_seconds: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            project_id:      Google Cloud project hosting the database.
            access_token:    OAuth bearer token with datastore scope.
            base_url:        REST root, overridable for the emulator.
            timeout_seconds: Per-request timeout.
            http_client:     Optional pre-configured httpx client (for testing).
        """
        if not project_id:
            raise ValueError("Firestore project_id is required")
        self._project_id = project_id
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._http_client = http_client
        self._owns_client = http_client is None

    def document_url(self, collection_id: str, document_id: str) -> str:
        return (
            f"{self._base_url}/projects/{self._project_id}/databases/(default)"
            f"/documents/{collection_id}/{document_id}"
        )

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def upsert(
        self, collection_id: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        url = self.document_url(collection_id, document_id)
        body = {"fields": encode_firestore_fields(fields)}
        try:
            response = await self._client().patch(
                url, json=body, headers=self._build_headers()
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SinkError(
                f"Firestore rejected write to {collection_id}/{document_id}: "
                f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SinkError(
                f"Firestore write to {collection_id}/{document_id} failed: {exc}"
            ) from exc

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


# ---------------------------------------------------------------------------
# Supabase Postgres
# ---------------------------------------------------------------------------


def build_upsert_query(
    table: str,
    columns: list[str],
    conflict_columns: list[str],
    update_columns: list[str] | None = None,
) -> str:
    """Build a PostgreSQL INSERT ... ON CONFLICT DO UPDATE (upsert) query.

    On conflict, updates the non-key columns and ``updated_at``.

    Args:
        table:            Target table name.
        columns:          All columns to insert.
        conflict_columns: Columns that define the UNIQUE constraint.
        update_columns:   Columns to update on conflict (defaults to non-key columns).

    Returns:
        Parameterized SQL string.
    """
    if update_columns is None:
        update_columns = [c for c in columns if c not in conflict_columns]

    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    col_list = ", ".join(columns)
    conflict_target = ", ".join(conflict_columns)

    if update_columns:
        update_set = ", ".join(f"{col} = EXCLUDED.{col}" for col in update_columns)
        update_set += ", updated_at = NOW()"
        do_clause = f"DO UPDATE SET {update_set}"
    else:
        do_clause = "DO NOTHING"

    return (
        f"INSERT INTO {table} ({col_list}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT ({conflict_target}) {do_clause}"
    )


class PostgresSink(RemoteSink):
    """Store documents as JSONB rows keyed by (collection_id, document_id).

    Expected table::

        CREATE TABLE synced_documents (
            collection_id text NOT NULL,
            document_id   text NOT NULL,
            fields        jsonb NOT NULL,
            updated_at    timestamptz NOT NULL DEFAULT NOW(),
            PRIMARY KEY (collection_id, document_id)
        );
    """

    name = "supabase"

    def __init__(self, table: str = "synced_documents", settings: Settings | None = None) -> None:
        self._table = table
        self._settings = settings
        self._pool_lock = asyncio.Lock()
        self._query = build_upsert_query(
            table,
            ["collection_id", "document_id", "fields"],
            ["collection_id", "document_id"],
        )

    @property
    def query(self) -> str:
        return self._query

    async def upsert(
        self, collection_id: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        payload = json.dumps(fields, default=_json_default)
        try:
            async with self._pool_lock:
                if not supabase.is_pool_ready():
                    await supabase.init_pool(self._settings)
            await supabase.execute(self._query, collection_id, document_id, payload)
        except (OSError, RuntimeError, asyncpg.PostgresError) as exc:
            raise SinkError(
                f"Postgres write to {collection_id}/{document_id} failed: {exc}"
            ) from exc

    async def close(self) -> None:
        await supabase.close_pool()


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

SINK_BACKENDS = ("memory", "firestore", "supabase")


def get_sink(settings: Settings | None = None) -> RemoteSink:
    """Build the RemoteSink selected by ``settings.sink_backend``.

    Raises:
        KeyError: If the backend name is not registered.
    """
    s = settings or get_settings()
    backend = s.sink_backend
    if backend == "memory":
        return InMemorySink()
    if backend == "firestore":
        return FirestoreSink(
            s.firestore_project_id,
            s.firestore_access_token,
            base_url=s.firestore_base_url,
            timeout_seconds=s.firestore_timeout_seconds,
        )
    if backend == "supabase":
        return PostgresSink(table=s.supabase_documents_table, settings=s)
    raise KeyError(
        f"No sink registered for backend '{backend}'. Available: {list(SINK_BACKENDS)}"
    )
