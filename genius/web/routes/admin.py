"""
Admin catalog routes: list, create, edit (teachers only) and delete records.

Requests:
    - Create/edit are `multipart/form-data`: one form field per schema field
      (repeat the field for multi-valued `classes`/`subjects`) plus an
      optional `file`.
    - A client may send `X-Operation-Id` (8-64 url-safe chars) to follow the
      upload with `GET /api/admin/operations/{id}` or cancel it with
      `DELETE /api/admin/operations/{id}` while the create/edit is running.

Responses:
    - Success: `{"message", "items", ...}` where `items` is the refreshed list.
    - Errors: `{"error", "detail", "message"}`; `message` is short and
      non-technical, `detail` a stable code.
      400 validation, 404 unknown kind/record, 405 edit of a kind without
      edit support, 409 cancelled upload, 502 upload or store failure.

Permissions:
    Caller must hold an admin session (enforced by the app middleware).
"""
from __future__ import annotations

import logging
import re
from collections import OrderedDict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from genius.catalog.errors import (
    CatalogError,
    LoadError,
    PersistenceError,
    RecordNotFound,
    UnsupportedOperation,
    UploadCancelled,
    UploadError,
    ValidationError,
    ValidationReason,
)
from genius.catalog.records import CandidateFile, FormState, empty_form
from genius.catalog.schemas import Schema, schema_for
from genius.catalog.services.resources import Operation, ResourceRepository

from ..storage_wiring import get_repository

admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("genius.web")

_OPERATION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")
MAX_TRACKED_OPERATIONS = 100


class OperationRegistry:
    """Recent operations by id, oldest evicted first."""

    def __init__(self, capacity: int = MAX_TRACKED_OPERATIONS):
        self.capacity = capacity
        self._ops: "OrderedDict[str, Operation]" = OrderedDict()

    def start(self, requested_id: Optional[str]) -> Operation:
        op = Operation(id=requested_id) if requested_id and _OPERATION_ID_RE.match(requested_id) else Operation()
        self._ops[op.id] = op
        self._ops.move_to_end(op.id)
        while len(self._ops) > self.capacity:
            self._ops.popitem(last=False)
        return op

    def get(self, operation_id: str) -> Optional[Operation]:
        return self._ops.get(operation_id)


OPERATIONS = OperationRegistry()


def _json_private(payload: Any, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _catalog_error(exc: CatalogError) -> JSONResponse:
    if isinstance(exc, ValidationError):
        status, error = 400, "bad_request"
    elif isinstance(exc, RecordNotFound):
        status, error = 404, "not_found"
    elif isinstance(exc, UploadCancelled):
        status, error = 409, "conflict"
    elif isinstance(exc, UnsupportedOperation):
        status, error = 405, "method_not_allowed"
    elif isinstance(exc, (UploadError, PersistenceError)):
        status, error = 502, "bad_gateway"
    else:
        status, error = 500, "internal_error"
    payload: Dict[str, Any] = {"error": error, "detail": exc.code, "message": exc.user_message}
    field = getattr(exc, "field", None)
    if field:
        payload["field"] = field
    return _json_private(payload, status_code=status)


def _resolve(kind: str) -> Optional[ResourceRepository]:
    try:
        schema = schema_for(kind)
    except LookupError:
        return None
    return get_repository(schema.kind)


def _unknown_kind() -> JSONResponse:
    return _json_private({"error": "not_found", "detail": "unknown_kind"}, status_code=404)


def _items(repo: ResourceRepository) -> list:
    return [record.to_wire(repo.schema) for record in repo.snapshot]


async def _candidate_file(value: Any, schema: Schema) -> Optional[CandidateFile]:
    # Browsers send an empty part without filename when no file was picked.
    if not isinstance(value, UploadFile) or not value.filename:
        return None
    # The spooled part already knows its size; reject before pulling it into memory.
    if value.size is not None and value.size > schema.rules.max_bytes:
        raise ValidationError(ValidationReason.TOO_LARGE, limit=schema.rules.max_bytes)
    data = await value.read()
    return CandidateFile(filename=value.filename, mime_type=value.content_type or "", data=data)


async def _read_form(request: Request, schema: Schema, state: FormState) -> FormState:
    form = await request.form()
    for spec in schema.fields:
        if spec.multi:
            if spec.name in form:
                state = state.with_value(spec.name, [v for v in form.getlist(spec.name) if isinstance(v, str)])
        elif spec.name in form:
            value = form.get(spec.name)
            if isinstance(value, str):
                state = state.with_value(spec.name, value)
    return state.with_file(await _candidate_file(form.get("file"), schema))


@admin_router.get("/api/admin/operations/{operation_id}")
async def get_operation(operation_id: str):
    op = OPERATIONS.get(operation_id)
    if op is None:
        return _json_private({"error": "not_found", "detail": "unknown_operation"}, status_code=404)
    return _json_private(op.to_dict())


@admin_router.delete("/api/admin/operations/{operation_id}")
async def cancel_operation(operation_id: str):
    """Cancel a running upload; 409 when the operation is past its upload phase."""
    op = OPERATIONS.get(operation_id)
    if op is None:
        return _json_private({"error": "not_found", "detail": "unknown_operation"}, status_code=404)
    if not op.cancel():
        return _json_private({"error": "conflict", "detail": "not_cancellable", **op.to_dict()}, status_code=409)
    return _json_private({"cancel_requested": True, **op.to_dict()}, status_code=202)


@admin_router.get("/api/admin/{kind}")
async def list_records(kind: str):
    """List records of a kind, newest first.

    A store failure degrades to an empty list with a `notice`; it is never an error status.
    """
    repo = _resolve(kind)
    if repo is None:
        return _unknown_kind()
    try:
        records = await repo.list()
    except LoadError as exc:
        return _json_private({"kind": repo.schema.kind.value, "items": [], "notice": exc.user_message})
    return _json_private({"kind": repo.schema.kind.value, "items": [r.to_wire(repo.schema) for r in records]})


@admin_router.post("/api/admin/{kind}")
async def create_record(request: Request, kind: str):
    repo = _resolve(kind)
    if repo is None:
        return _unknown_kind()
    try:
        state = await _read_form(request, repo.schema, empty_form(repo.schema))
    except CatalogError as exc:
        return _catalog_error(exc)
    op = OPERATIONS.start(request.headers.get("X-Operation-Id"))
    try:
        record_id = await repo.create(state.to_create_fields(), state.file, operation=op)
    except CatalogError as exc:
        logger.info("Create %s rejected: %s", repo.schema.kind.value, exc.code)
        return _catalog_error(exc)
    return _json_private(
        {
            "id": record_id,
            "message": f"{repo.schema.label} added successfully",
            "operation": op.to_dict(),
            "items": _items(repo),
        },
        status_code=201,
    )


@admin_router.put("/api/admin/{kind}/{record_id}")
async def update_record(request: Request, kind: str, record_id: str):
    """Replace the fields of a record; without `file` the stored asset is kept."""
    repo = _resolve(kind)
    if repo is None:
        return _unknown_kind()
    if not repo.schema.supports_update:
        return _catalog_error(UnsupportedOperation())
    try:
        current = await repo.get(record_id)
    except CatalogError as exc:
        return _catalog_error(exc)
    try:
        state = await _read_form(request, repo.schema, empty_form(repo.schema).editing(current))
    except CatalogError as exc:
        return _catalog_error(exc)
    op = OPERATIONS.start(request.headers.get("X-Operation-Id"))
    try:
        await repo.update(record_id, state.to_update_fields(), state.file, operation=op)
    except CatalogError as exc:
        logger.info("Update %s rejected: %s", repo.schema.kind.value, exc.code)
        return _catalog_error(exc)
    return _json_private(
        {
            "id": record_id,
            "message": f"{repo.schema.label} updated successfully",
            "operation": op.to_dict(),
            "items": _items(repo),
        }
    )


@admin_router.delete("/api/admin/{kind}/{record_id}")
async def delete_record(kind: str, record_id: str):
    """Delete the document, then best-effort its blob; a blob failure still reports success."""
    repo = _resolve(kind)
    if repo is None:
        return _unknown_kind()
    try:
        await repo.remove(record_id)
    except CatalogError as exc:
        return _catalog_error(exc)
    return _json_private({"id": record_id, "message": f"{repo.schema.label} deleted", "items": _items(repo)})


__all__ = ["admin_router", "OPERATIONS", "OperationRegistry"]
