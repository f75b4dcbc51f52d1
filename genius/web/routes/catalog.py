"""
Public read-only catalog routes backing the institute website.

Behavior:
    - `GET /api/catalog/{kind}` lists records newest first, optionally filtered
      by `subject` and `class_name` (exact match; teachers match on membership).
    - A store failure yields an empty list, never an error status.
    - Materials carry a `fileLabel` badge, lectures a resolved `thumbnail`.

Permissions:
    Public. Only fields that are shown on the website are returned.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from genius.catalog.errors import LoadError
from genius.catalog.public import distinct_values, file_type_label, filter_records, lecture_thumbnail
from genius.catalog.schemas import ResourceKind, schema_for

from ..storage_wiring import get_repository

catalog_router = APIRouter(tags=["Catalog"])
logger = logging.getLogger("genius.web")


@catalog_router.get("/api/catalog/{kind}")
async def public_catalog(kind: str, subject: Optional[str] = None, class_name: Optional[str] = None):
    try:
        schema = schema_for(kind)
    except LookupError:
        return JSONResponse({"error": "not_found", "detail": "unknown_kind"}, status_code=404)
    repo = get_repository(schema.kind)
    try:
        records = await repo.list()
    except LoadError:
        logger.warning("Public listing of %s degraded to empty", schema.collection)
        records = []
    filtered = filter_records(records, subject=subject, class_name=class_name)
    items = []
    for record in filtered:
        item = record.to_wire(schema)
        if schema.kind is ResourceKind.MATERIAL:
            item["fileLabel"] = file_type_label(record.asset.mime_type if record.asset else None)
        elif schema.kind is ResourceKind.LECTURE:
            item["thumbnail"] = lecture_thumbnail(record)
        items.append(item)
    multi = schema.kind is ResourceKind.TEACHER
    return JSONResponse(
        {
            "kind": schema.kind.value,
            "items": items,
            "subjects": distinct_values(records, "subjects" if multi else "subject"),
            "classes": distinct_values(records, "classes" if multi else "className"),
        },
        headers={"Cache-Control": "public, max-age=60"},
    )


__all__ = ["catalog_router"]
