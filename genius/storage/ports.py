"""
Storage ports used by the catalog repositories.

Keep these small and framework-agnostic so tests can supply simple fakes.
Adapters (in-memory, Supabase) implement them; the catalog never imports an
adapter directly.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol


Document = Dict[str, Any]


class DocumentStore(Protocol):
    """Structured records addressed by collection and opaque id.

    Contract:
        - `insert` assigns both `id` and `createdAt`; callers never send them.
        - `query` orders by a single field; ties are left to the store.
        - Returned documents always carry `id` and `createdAt`.
    """

    async def query(self, collection: str, *, order_by: str, descending: bool = True) -> List[Document]: ...

    async def get(self, collection: str, doc_id: str) -> Optional[Document]: ...

    async def insert(self, collection: str, fields: Document) -> str: ...

    async def replace(self, collection: str, doc_id: str, fields: Document) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...


@dataclass(frozen=True)
class UploadSnapshot:
    """Progress notification emitted by a chunked upload.

    `handle` is set only on the final snapshot, once the store has accepted
    every byte.
    """

    bytes_transferred: int
    total_bytes: int
    handle: Optional[str] = None

    @property
    def ratio(self) -> float:
        if self.total_bytes <= 0:
            return 1.0
        return min(1.0, max(0.0, self.bytes_transferred / self.total_bytes))


class BlobStore(Protocol):
    """Binary objects addressed by path, dereferenceable via a public URL."""

    def upload_chunked(self, path: str, data: bytes, *, content_type: str) -> AsyncIterator[UploadSnapshot]: ...

    async def resolve_public_url(self, handle: str) -> str: ...

    async def delete_by_url(self, url: str) -> None: ...

    async def discard(self, path: str) -> None: ...


__all__ = ["Document", "DocumentStore", "UploadSnapshot", "BlobStore"]
