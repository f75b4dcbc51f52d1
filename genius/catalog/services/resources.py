"""Catalog resource repository: one generic orchestrator, four schemas."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from genius.storage.ports import DocumentStore

from ..errors import (
    CatalogError,
    LoadError,
    PersistenceError,
    RecordNotFound,
    UnsupportedOperation,
    ValidationError,
)
from ..records import (
    AssetReference,
    CandidateFile,
    CreateFields,
    ResourceRecord,
    UpdateFields,
    asset_to_wire,
    record_from_document,
)
from ..schemas import Schema
from ..uploader import BlobUploader, ProgressCallback, UploadTask
from ..validation import validate_fields, validate_file

_log = logging.getLogger("genius.catalog")


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    Phase.IDLE: {Phase.VALIDATING, Phase.FAILED},
    Phase.VALIDATING: {Phase.UPLOADING, Phase.PERSISTING, Phase.FAILED},
    Phase.UPLOADING: {Phase.PERSISTING, Phase.FAILED},
    Phase.PERSISTING: {Phase.DONE, Phase.FAILED},
    Phase.DONE: set(),
    Phase.FAILED: set(),
}


@dataclass
class Operation:
    """Progress of one in-flight create/update.

    Transitions: idle -> validating -> (uploading)? -> persisting -> done,
    with `failed` reachable from every non-terminal phase.
    """

    id: str = field(default_factory=lambda: uuid4().hex)
    phase: Phase = Phase.IDLE
    progress: float = 0.0
    error: Optional[str] = None
    record_id: Optional[str] = None
    upload: Optional[UploadTask] = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.DONE, Phase.FAILED)

    def move(self, phase: Phase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise RuntimeError(f"illegal_transition:{self.phase.value}->{phase.value}")
        self.phase = phase

    def fail(self, code: str) -> None:
        if not self.finished:
            self.move(Phase.FAILED)
        self.error = code

    def cancel(self) -> bool:
        """Cancel the running upload, if any. Returns False when nothing can be cancelled."""
        if self.phase is Phase.UPLOADING and self.upload is not None:
            return self.upload.cancel()
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.id,
            "phase": self.phase.value,
            "progress": round(self.progress * 100),
            "error": self.error,
            "record_id": self.record_id,
        }


class ResourceRepository:
    """Create/update/delete records of one kind, keeping document and blob consistent.

    Ordering rules:
        - Validation runs before any network call.
        - On create/update an upload completes before the document write starts;
          a failed upload leaves the document store untouched.
        - On remove the document goes first; the blob delete is attempted once
          and its failure is logged, never raised.
        - Every successful mutation refreshes `snapshot` from the store.
    """

    def __init__(self, schema: Schema, documents: DocumentStore, uploader: BlobUploader):
        self.schema = schema
        self.documents = documents
        self.uploader = uploader
        self.snapshot: Tuple[ResourceRecord, ...] = ()

    # --- Reads -----------------------------------------------------------------

    async def list(self) -> list[ResourceRecord]:
        """Return all records of the kind, newest first. Raises LoadError."""
        try:
            docs = await self.documents.query(
                self.schema.collection, order_by=self.schema.order_field, descending=True
            )
        except Exception as exc:
            _log.warning("Listing %s failed: %s", self.schema.collection, exc.__class__.__name__)
            raise LoadError(exc) from exc
        return [record_from_document(self.schema, d) for d in docs]

    async def refresh(self) -> Tuple[ResourceRecord, ...]:
        """Replace `snapshot` with a fresh listing; degrades to empty on LoadError."""
        try:
            self.snapshot = tuple(await self.list())
        except LoadError:
            self.snapshot = ()
        return self.snapshot

    async def get(self, record_id: str) -> ResourceRecord:
        try:
            doc = await self.documents.get(self.schema.collection, record_id)
        except Exception as exc:
            raise LoadError(exc) from exc
        if doc is None:
            raise RecordNotFound()
        return record_from_document(self.schema, doc)

    # --- Writes ----------------------------------------------------------------

    async def _upload(
        self,
        file: CandidateFile,
        operation: Operation,
        on_progress: Optional[ProgressCallback],
    ) -> AssetReference:
        task = self.uploader.upload(file, self.schema.folder)
        operation.upload = task
        operation.move(Phase.UPLOADING)

        def _progress(ratio: float) -> None:
            operation.progress = ratio
            if on_progress is not None:
                on_progress(ratio)

        url = await task.run(on_progress=_progress)
        return AssetReference(url=url, original_file_name=file.filename, mime_type=file.mime_type)

    async def _discard_blob(self, asset: Optional[AssetReference], reason: str) -> None:
        """Best-effort, at-most-once blob delete; failures are logged and dropped."""
        if asset is None:
            return
        try:
            await self.uploader.store.delete_by_url(asset.url)
        except Exception as exc:
            _log.warning(
                "Blob cleanup (%s) for %s failed: %s", reason, self.schema.collection, exc.__class__.__name__
            )

    async def create(
        self,
        fields: CreateFields,
        file: Optional[CandidateFile] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        operation: Optional[Operation] = None,
    ) -> str:
        """Create a record, uploading `file` first when given. Returns the new id."""
        op = operation or Operation()
        try:
            op.move(Phase.VALIDATING)
            validate_fields(self.schema, fields.values, file, creating=True)
            if file is not None:
                validate_file(file, self.schema.rules)
            asset = await self._upload(file, op, on_progress) if file is not None else None
            op.move(Phase.PERSISTING)
            doc = dict(fields.values)
            doc.update(asset_to_wire(self.schema, asset))
            try:
                record_id = await self.documents.insert(self.schema.collection, doc)
            except Exception as exc:
                _log.warning("Insert into %s failed: %s", self.schema.collection, exc.__class__.__name__)
                await self._discard_blob(asset, "insert_failed")
                raise PersistenceError(exc) from exc
        except CatalogError as exc:
            op.fail(exc.code)
            raise
        op.record_id = record_id
        op.progress = 1.0
        op.move(Phase.DONE)
        _log.info("Created %s record", self.schema.kind.value)
        await self.refresh()
        return record_id

    async def update(
        self,
        record_id: str,
        fields: UpdateFields,
        file: Optional[CandidateFile] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        operation: Optional[Operation] = None,
    ) -> None:
        """Replace the fields of a record; keep its asset unless `file` is given."""
        op = operation or Operation()
        if not self.schema.supports_update:
            op.fail(UnsupportedOperation.code)
            raise UnsupportedOperation()
        try:
            op.move(Phase.VALIDATING)
            validate_fields(self.schema, fields.values, file, creating=False)
            if file is not None:
                validate_file(file, self.schema.rules)
            current = await self.get(record_id)
            new_asset = await self._upload(file, op, on_progress) if file is not None else None
            op.move(Phase.PERSISTING)
            doc = dict(fields.values)
            doc.update(asset_to_wire(self.schema, new_asset or current.asset))
            try:
                await self.documents.replace(self.schema.collection, record_id, doc)
            except Exception as exc:
                _log.warning("Replace in %s failed: %s", self.schema.collection, exc.__class__.__name__)
                await self._discard_blob(new_asset, "replace_failed")
                if isinstance(exc, KeyError):
                    raise RecordNotFound() from exc
                raise PersistenceError(exc) from exc
        except CatalogError as exc:
            op.fail(exc.code)
            raise
        if new_asset is not None and current.asset is not None and current.asset.url != new_asset.url:
            await self._discard_blob(current.asset, "replaced")
        op.record_id = record_id
        op.progress = 1.0
        op.move(Phase.DONE)
        _log.info("Updated %s record", self.schema.kind.value)
        await self.refresh()

    async def remove(self, record_id: str) -> None:
        """Delete the document, then attempt its blob delete exactly once."""
        record = await self.get(record_id)
        try:
            await self.documents.delete(self.schema.collection, record_id)
        except Exception as exc:
            _log.warning("Delete from %s failed: %s", self.schema.collection, exc.__class__.__name__)
            raise PersistenceError(exc) from exc
        await self._discard_blob(record.asset, "removed")
        _log.info("Removed %s record", self.schema.kind.value)
        await self.refresh()


__all__ = ["Phase", "Operation", "ResourceRepository", "ValidationError"]
