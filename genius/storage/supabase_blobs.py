"""
Supabase Storage adapter for catalog assets.

Uploads use Supabase's resumable (TUS 1.0.0) endpoint so large study materials
are sent in fixed-size chunks and progress can be reported after each chunk:

- POST  /storage/v1/upload/resumable   -> 201 + Location (upload session)
- PATCH {Location} per chunk           -> 204 + Upload-Offset

Public URLs and deletes go through the `supabase` client's storage bucket
(`storage.from_(bucket).get_public_url` / `.remove([path])`). Public URLs have
the shape `/storage/v1/object/public/{bucket}/{path}`; the bucket must be
public because the institute website links files directly. The SDK exposes no
per-chunk progress, so only the TUS session and chunk PATCHes use `httpx`.

Security:
- The service role key authenticates every call and never leaves the server.
- `delete_by_url` only accepts URLs of the configured project and bucket.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, AsyncIterator, Dict
from urllib.parse import unquote, urlparse

import httpx

from .ports import UploadSnapshot

_log = logging.getLogger("genius.storage")

TUS_VERSION = "1.0.0"


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SupabaseBlobStore:
    """BlobStore implementation backed by Supabase Storage."""

    def __init__(
        self,
        client: Any,
        http: httpx.AsyncClient,
        *,
        base_url: str,
        service_key: str,
        bucket: str,
        chunk_size: int = 6 * 1024 * 1024,
        timeout: float = 30.0,
    ):
        # `supabase.AsyncClient` for bucket calls, plain httpx for TUS chunks.
        self._client = client
        self._http = http
        self._base = base_url.rstrip("/")
        self._bucket = bucket
        self._headers = {"apikey": service_key, "Authorization": f"Bearer {service_key}"}
        self._chunk_size = max(1, chunk_size)
        self._timeout = timeout

    # --- Helpers -----------------------------------------------------------------

    @property
    def public_prefix(self) -> str:
        return f"{self._base}/storage/v1/object/public/{self._bucket}/"

    def _storage_bucket(self) -> Any:
        return self._client.storage.from_(self._bucket)

    def _norm_key(self, key: str) -> str:
        # Paths are relative to the bucket (storage prepends the bucket id).
        norm_key = key.lstrip("/")
        prefix = f"{self._bucket}/"
        if norm_key.startswith(prefix):
            norm_key = norm_key[len(prefix):]
        return norm_key

    def _resolve_location(self, location: str) -> str:
        if location.startswith("http://") or location.startswith("https://"):
            return location
        return f"{self._base}/{location.lstrip('/')}"

    async def _start_session(self, key: str, total: int, content_type: str) -> str:
        metadata = ",".join(
            [
                f"bucketName {_b64(self._bucket)}",
                f"objectName {_b64(key)}",
                f"contentType {_b64(content_type or 'application/octet-stream')}",
                f"cacheControl {_b64('3600')}",
            ]
        )
        headers: Dict[str, str] = dict(self._headers)
        headers.update(
            {
                "Tus-Resumable": TUS_VERSION,
                "Upload-Length": str(total),
                "Upload-Metadata": metadata,
                "x-upsert": "false",
            }
        )
        resp = await self._http.post(
            f"{self._base}/storage/v1/upload/resumable", headers=headers, timeout=self._timeout
        )
        resp.raise_for_status()
        location = resp.headers.get("location") or resp.headers.get("Location")
        if not location:
            raise RuntimeError("upload_session_missing_location")
        return self._resolve_location(location)

    async def _send_chunk(self, location: str, offset: int, chunk: bytes) -> int:
        headers: Dict[str, str] = dict(self._headers)
        headers.update(
            {
                "Tus-Resumable": TUS_VERSION,
                "Upload-Offset": str(offset),
                "Content-Type": "application/offset+octet-stream",
            }
        )
        resp = await self._http.patch(location, headers=headers, content=chunk, timeout=self._timeout)
        resp.raise_for_status()
        raw = resp.headers.get("upload-offset") or resp.headers.get("Upload-Offset")
        try:
            new_offset = int(raw) if raw is not None else offset + len(chunk)
        except ValueError:
            new_offset = offset + len(chunk)
        if new_offset < offset:
            raise RuntimeError("upload_offset_regressed")
        return new_offset

    # --- Protocol methods --------------------------------------------------------

    async def upload_chunked(self, path: str, data: bytes, *, content_type: str) -> AsyncIterator[UploadSnapshot]:
        key = self._norm_key(path)
        total = len(data)
        location = await self._start_session(key, total, content_type)
        offset = 0
        yield UploadSnapshot(0, total)
        while offset < total:
            chunk = data[offset:offset + self._chunk_size]
            offset = min(total, await self._send_chunk(location, offset, chunk))
            if offset < total:
                yield UploadSnapshot(offset, total)
        yield UploadSnapshot(total, total, handle=key)

    async def resolve_public_url(self, handle: str) -> str:
        url = await self._storage_bucket().get_public_url(self._norm_key(handle))
        return str(url).rstrip("?")

    def path_from_url(self, url: str) -> str:
        """Return the bucket-relative path of a public URL of this bucket."""
        parsed = urlparse(url or "")
        prefix = urlparse(self.public_prefix)
        if (parsed.scheme, parsed.netloc) != (prefix.scheme, prefix.netloc):
            raise ValueError("foreign_url")
        if not parsed.path.startswith(prefix.path):
            raise ValueError("foreign_url")
        key = unquote(parsed.path[len(prefix.path):])
        if not key or ".." in key.split("/"):
            raise ValueError("invalid_object_path")
        return key

    async def _remove(self, key: str) -> Any:
        return await self._storage_bucket().remove([key])

    async def delete_by_url(self, url: str) -> None:
        removed = await self._remove(self.path_from_url(url))
        if isinstance(removed, list) and not removed:
            _log.debug("delete_by_url: object already absent")

    async def discard(self, path: str) -> None:
        await self._remove(self._norm_key(path))


__all__ = ["SupabaseBlobStore", "TUS_VERSION"]
