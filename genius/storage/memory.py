"""
In-memory document and blob stores for development and tests.

Why: The app must run without Supabase credentials (local work, CI). These
stores honor the same contracts as the Supabase adapters: ids are opaque and
never reused, `createdAt` increases strictly per store, uploads arrive in
chunks and yield to the event loop between chunks.

Not suitable for production: state lives in process memory only.
"""
from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, List, Optional
from uuid import uuid4

import anyio

from .ports import Document, UploadSnapshot


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._last_created: datetime | None = None
        # Test hook: name of the next operation that should fail ("query", "insert", ...).
        self.fail_next: set[str] = set()

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail_next:
            self.fail_next.discard(op)
            raise ConnectionError(f"simulated_{op}_failure")

    def _next_created_at(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    async def query(self, collection: str, *, order_by: str, descending: bool = True) -> List[Document]:
        await anyio.sleep(0)
        self._maybe_fail("query")
        docs = [copy.deepcopy(d) for d in self._collections.get(collection, {}).values()]
        docs.sort(key=lambda d: d.get(order_by) or datetime.min.replace(tzinfo=timezone.utc), reverse=descending)
        return docs

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        await anyio.sleep(0)
        self._maybe_fail("get")
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def insert(self, collection: str, fields: Document) -> str:
        await anyio.sleep(0)
        self._maybe_fail("insert")
        doc_id = uuid4().hex
        doc = copy.deepcopy(dict(fields))
        doc["id"] = doc_id
        doc["createdAt"] = self._next_created_at()
        self._collections.setdefault(collection, {})[doc_id] = doc
        return doc_id

    async def replace(self, collection: str, doc_id: str, fields: Document) -> None:
        await anyio.sleep(0)
        self._maybe_fail("replace")
        docs = self._collections.setdefault(collection, {})
        existing = docs.get(doc_id)
        if existing is None:
            raise KeyError(doc_id)
        doc = copy.deepcopy(dict(fields))
        doc["id"] = doc_id
        doc["createdAt"] = existing["createdAt"]
        docs[doc_id] = doc

    async def delete(self, collection: str, doc_id: str) -> None:
        await anyio.sleep(0)
        self._maybe_fail("delete")
        self._collections.get(collection, {}).pop(doc_id, None)


class InMemoryBlobStore:
    """Blob store keeping object bytes in a dict keyed by path."""

    URL_PREFIX = "memory://blobs/"

    def __init__(self, *, chunk_size: int = 256 * 1024) -> None:
        self.chunk_size = max(1, chunk_size)
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.deleted_urls: List[str] = []
        self.fail_upload = False
        self.fail_delete = False

    async def upload_chunked(self, path: str, data: bytes, *, content_type: str) -> AsyncIterator[UploadSnapshot]:
        total = len(data)
        buffer = bytearray()
        yield UploadSnapshot(0, total)
        for offset in range(0, total, self.chunk_size):
            await anyio.sleep(0)
            if self.fail_upload:
                # Keep what was received so far, like a real interrupted upload.
                self.objects[path] = bytes(buffer)
                raise ConnectionError("simulated_upload_failure")
            buffer.extend(data[offset:offset + self.chunk_size])
            self.objects[path] = bytes(buffer)
            if len(buffer) < total:
                yield UploadSnapshot(len(buffer), total)
        self.objects[path] = bytes(buffer)
        self.content_types[path] = content_type
        yield UploadSnapshot(total, total, handle=path)

    async def resolve_public_url(self, handle: str) -> str:
        await anyio.sleep(0)
        if handle not in self.objects:
            raise FileNotFoundError(handle)
        return f"{self.URL_PREFIX}{handle}"

    async def delete_by_url(self, url: str) -> None:
        await anyio.sleep(0)
        self.deleted_urls.append(url)
        if self.fail_delete:
            raise ConnectionError("simulated_delete_failure")
        if not url.startswith(self.URL_PREFIX):
            raise ValueError("foreign_url")
        path = url[len(self.URL_PREFIX):]
        if self.objects.pop(path, None) is None:
            raise FileNotFoundError(path)
        self.content_types.pop(path, None)

    async def discard(self, path: str) -> None:
        await anyio.sleep(0)
        self.objects.pop(path, None)
        self.content_types.pop(path, None)

    def read(self, url: str) -> bytes:
        """Dereference a public URL produced by this store."""
        if not url.startswith(self.URL_PREFIX):
            raise ValueError("foreign_url")
        return self.objects[url[len(self.URL_PREFIX):]]


__all__ = ["InMemoryDocumentStore", "InMemoryBlobStore"]
