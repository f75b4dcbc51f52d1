"""
Wiring of the document/blob stores and the per-kind repositories.

Why:
    The app must run without Supabase credentials (local development, tests)
    and switch to Supabase as soon as SUPABASE_URL and
    SUPABASE_SERVICE_ROLE_KEY are present. Routes only ever see the
    repositories registered here.

Behavior:
    - `build_stores()` returns Supabase adapters sharing one `supabase` client
      (plus an `httpx.AsyncClient` for resumable chunks) when configured,
      otherwise in-memory stores.
    - `get_repository(kind)` lazily builds in-memory repositories on first use
      so routers work even when the lifespan did not run.
    - `set_repositories()` lets startup and tests swap the whole table.

Security:
    The service role key is only passed to server-side adapters.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx
from supabase import acreate_client

from genius.catalog.schemas import SCHEMAS, ResourceKind
from genius.catalog.services.resources import ResourceRepository
from genius.catalog.uploader import BlobUploader
from genius.storage.config import (
    get_assets_bucket,
    get_service_role_key,
    get_supabase_url,
    get_upload_chunk_bytes,
)
from genius.storage.memory import InMemoryBlobStore, InMemoryDocumentStore
from genius.storage.ports import BlobStore, DocumentStore
from genius.storage.supabase_blobs import SupabaseBlobStore
from genius.storage.supabase_documents import SupabaseDocumentStore

logger = logging.getLogger("genius.web")


@dataclass
class StoreBundle:
    documents: DocumentStore
    blobs: BlobStore
    client: Optional[httpx.AsyncClient] = None
    backend: str = "memory"

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()


async def build_stores() -> StoreBundle:
    url = get_supabase_url()
    key = get_service_role_key()
    if not url or not key:
        logger.info("Supabase not configured; using in-memory stores")
        return StoreBundle(documents=InMemoryDocumentStore(), blobs=InMemoryBlobStore())
    supabase = await acreate_client(url, key)
    http = httpx.AsyncClient()
    documents = SupabaseDocumentStore(supabase)
    blobs = SupabaseBlobStore(
        supabase,
        http,
        base_url=url,
        service_key=key,
        bucket=get_assets_bucket(),
        chunk_size=get_upload_chunk_bytes(),
    )
    logger.info("Stores wired: Supabase")
    return StoreBundle(documents=documents, blobs=blobs, client=http, backend="supabase")


def build_repositories(documents: DocumentStore, blobs: BlobStore) -> Dict[ResourceKind, ResourceRepository]:
    uploader = BlobUploader(blobs)
    return {kind: ResourceRepository(schema, documents, uploader) for kind, schema in SCHEMAS.items()}


_REPOSITORIES: Optional[Dict[ResourceKind, ResourceRepository]] = None


def set_repositories(repositories: Optional[Dict[ResourceKind, ResourceRepository]]) -> None:
    """Install the repository table (None resets to lazy in-memory defaults)."""
    global _REPOSITORIES
    _REPOSITORIES = repositories


def get_repository(kind: ResourceKind) -> ResourceRepository:
    global _REPOSITORIES
    if _REPOSITORIES is None:
        _REPOSITORIES = build_repositories(InMemoryDocumentStore(), InMemoryBlobStore())
    return _REPOSITORIES[kind]


__all__ = ["StoreBundle", "build_stores", "build_repositories", "set_repositories", "get_repository"]
