"""
Blob uploader: chunked upload with progress, public URL resolution and
cooperative cancellation.

Usage:
    task = uploader.upload(file, folder="teachers")
    url = await task.run(on_progress=lambda ratio: ...)

`task.cancel()` may be called from another coroutine; it takes effect at the
next progress checkpoint, removes the partially uploaded blob and makes `run`
raise `UploadCancelled`. A failed transport also removes whatever part of the
blob was stored. The uploader enforces no timeout of its own.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from genius.storage.keys import make_blob_path, now_ms
from genius.storage.ports import BlobStore

from .errors import UploadCancelled, UploadError
from .records import CandidateFile

_log = logging.getLogger("genius.catalog")

ProgressCallback = Callable[[float], None]


class UploadTask:
    """One upload of one file to one storage path. Runs at most once."""

    def __init__(self, store: BlobStore, file: CandidateFile, path: str):
        self._store = store
        self.file = file
        self.path = path
        self.progress = 0.0
        self.url: Optional[str] = None
        self._cancel_requested = False
        self._started = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    def cancel(self) -> bool:
        """Request cancellation; honored at the next checkpoint.

        Returns False once the upload has finished (URL resolved or failed).
        """
        if self._finished:
            return False
        self._cancel_requested = True
        return True

    def _report(self, ratio: float, on_progress: Optional[ProgressCallback]) -> None:
        # Transports may repeat or reorder offsets; consumers only ever see non-decreasing values.
        if ratio < self.progress:
            return
        self.progress = ratio
        if on_progress is not None:
            on_progress(ratio)

    async def _abort(self) -> None:
        try:
            await self._store.discard(self.path)
        except Exception as exc:
            _log.warning("Discarding partial upload failed: %s", exc.__class__.__name__)

    async def run(self, on_progress: Optional[ProgressCallback] = None) -> str:
        """Upload the file and return its public URL.

        Raises:
            UploadCancelled: cancel() was called before completion.
            UploadError: the transport failed; `cause` holds the original error.
        """
        if self._started:
            raise RuntimeError("upload_already_started")
        self._started = True
        try:
            return await self._run(on_progress)
        finally:
            self._finished = True

    async def _run(self, on_progress: Optional[ProgressCallback]) -> str:
        if self._cancel_requested:
            raise UploadCancelled()
        handle: Optional[str] = None
        stream = self._store.upload_chunked(self.path, self.file.data, content_type=self.file.mime_type)
        try:
            async for snapshot in stream:
                self._report(snapshot.ratio, on_progress)
                if snapshot.handle is not None:
                    handle = snapshot.handle
                if self._cancel_requested:
                    break
        except Exception as exc:
            _log.warning("Upload failed: %s", exc.__class__.__name__)
            await self._abort()
            raise UploadError(exc) from exc
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        if self._cancel_requested:
            await self._abort()
            raise UploadCancelled()
        if handle is None:
            await self._abort()
            raise UploadError(code="upload_incomplete")
        try:
            url = await self._store.resolve_public_url(handle)
        except Exception as exc:
            _log.warning("Resolving public URL failed: %s", exc.__class__.__name__)
            await self._abort()
            raise UploadError(exc) from exc
        # Last checkpoint: a cancel accepted while the URL was resolving still wins.
        if self._cancel_requested:
            await self._abort()
            raise UploadCancelled()
        self.url = url
        return url


class BlobUploader:
    """Creates upload tasks against one blob store."""

    def __init__(self, store: BlobStore, *, clock: Callable[[], int] = now_ms):
        self.store = store
        self._clock = clock

    def upload(self, file: CandidateFile, folder: str) -> UploadTask:
        path = make_blob_path(folder=folder, filename=file.filename, epoch_ms=self._clock())
        return UploadTask(self.store, file, path)


__all__ = ["BlobUploader", "UploadTask", "ProgressCallback"]
