"""
Supabase-backed document store.

Each catalog collection maps to a table of the same name, reached through the
`supabase` client's PostgREST builder (`client.table(collection)`). Tables are
expected to provide:

- `id` text/uuid primary key with a server default,
- `createdAt` timestamptz with default `now()`,
- one column per wire field of the resource kind (jsonb/text[] for lists).

Errors raised by the client (`postgrest.exceptions.APIError`, transport
errors) propagate unchanged; the repository maps them to catalog errors.

Security:
- The client must be initialized with the service role key; it never leaves
  the server.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from .ports import Document

_log = logging.getLogger("genius.storage")

# Postgres trims trailing zeros of fractional seconds ("10:00:00.12345+00:00").
_FRACTION_RE = re.compile(r"\.(\d+)(?=[+-]\d\d:\d\d$|$)")


def _parse_timestamp(value: Any) -> Any:
    """Return a datetime for ISO-8601 strings; leave other values untouched."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        _log.debug("Unparseable timestamp kept as text")
        return value


def _rows(response: Any) -> List[Dict[str, Any]]:
    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        raise ValueError("unexpected_query_payload")
    return [row for row in data if isinstance(row, dict)]


class SupabaseDocumentStore:
    """DocumentStore implementation using a `supabase.AsyncClient`."""

    def __init__(self, client: Any):
        # e.g. `await supabase.acreate_client(url, service_role_key)`
        self._client = client

    # --- Helpers -----------------------------------------------------------------

    @staticmethod
    def _normalize(row: Dict[str, Any]) -> Document:
        doc = dict(row)
        if "id" in doc and doc["id"] is not None:
            doc["id"] = str(doc["id"])
        if "createdAt" in doc:
            doc["createdAt"] = _parse_timestamp(doc["createdAt"])
        return doc

    @staticmethod
    def _writable(fields: Document) -> Document:
        # id/createdAt are owned by the store.
        return {k: v for k, v in dict(fields).items() if k not in {"id", "createdAt"}}

    # --- Protocol methods --------------------------------------------------------

    async def query(self, collection: str, *, order_by: str, descending: bool = True) -> List[Document]:
        response = await self._client.table(collection).select("*").order(order_by, desc=descending).execute()
        return [self._normalize(r) for r in _rows(response)]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        response = await self._client.table(collection).select("*").eq("id", doc_id).limit(1).execute()
        rows = _rows(response)
        return self._normalize(rows[0]) if rows else None

    async def insert(self, collection: str, fields: Document) -> str:
        response = await self._client.table(collection).insert(self._writable(fields)).execute()
        rows = _rows(response)
        if not rows or not rows[0].get("id"):
            raise ValueError("insert_returned_no_id")
        return str(rows[0]["id"])

    async def replace(self, collection: str, doc_id: str, fields: Document) -> None:
        response = await self._client.table(collection).update(self._writable(fields)).eq("id", doc_id).execute()
        if not _rows(response):
            raise KeyError(doc_id)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._client.table(collection).delete().eq("id", doc_id).execute()


__all__ = ["SupabaseDocumentStore"]
