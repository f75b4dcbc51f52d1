"""
Catalog record and form value types.

`ResourceRecord` is the typed view of a stored document: non-asset fields in
`values`, the optional `AssetReference` separately. `CreateFields` and
`UpdateFields` are the write payloads; `UpdateFields` deliberately has no asset
slot so an update without a new file cannot touch the stored asset.

`FormState` is the immutable value behind one admin form. Every change returns
a new instance; `empty_form(schema)` is the reset value.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .schemas import ResourceKind, Schema


@dataclass(frozen=True)
class AssetReference:
    url: str
    original_file_name: Optional[str] = None
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class CandidateFile:
    """An uploaded file as declared by the client (type is trusted, not sniffed)."""

    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ResourceRecord:
    kind: ResourceKind
    id: str
    values: Mapping[str, Any]
    asset: Optional[AssetReference]
    created_at: Optional[datetime]

    def to_wire(self, schema: Schema) -> Dict[str, Any]:
        doc = dict(self.values)
        doc.update(asset_to_wire(schema, self.asset))
        doc["id"] = self.id
        doc["createdAt"] = self.created_at.isoformat() if self.created_at else None
        return doc


def normalize_multi(values: Iterable[Any] | None) -> List[str]:
    """Set semantics for multi-valued fields: trimmed, de-duplicated, sorted."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    return sorted({str(v).strip() for v in values if str(v).strip()})


def normalize_values(schema: Schema, raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Project raw input onto the schema's fields (unknown keys are dropped)."""
    out: Dict[str, Any] = {}
    for spec in schema.fields:
        value = raw.get(spec.name)
        if spec.multi:
            out[spec.name] = normalize_multi(value)
        else:
            text = "" if value is None else str(value).strip()
            out[spec.name] = text or spec.default
    return out


def asset_to_wire(schema: Schema, asset: Optional[AssetReference]) -> Dict[str, Any]:
    slot = schema.asset
    doc: Dict[str, Any] = {slot.url_field: asset.url if asset else ""}
    if slot.name_field:
        doc[slot.name_field] = (asset.original_file_name or "") if asset else ""
    if slot.type_field:
        doc[slot.type_field] = (asset.mime_type or "") if asset else ""
    return doc


def asset_from_wire(schema: Schema, doc: Mapping[str, Any]) -> Optional[AssetReference]:
    slot = schema.asset
    url = doc.get(slot.url_field)
    if not url:
        return None
    name = doc.get(slot.name_field) if slot.name_field else None
    mime = doc.get(slot.type_field) if slot.type_field else None
    return AssetReference(url=str(url), original_file_name=name or None, mime_type=mime or None)


def record_from_document(schema: Schema, doc: Mapping[str, Any]) -> ResourceRecord:
    created = doc.get("createdAt")
    return ResourceRecord(
        kind=schema.kind,
        id=str(doc["id"]),
        values=MappingProxyType(normalize_values(schema, doc)),
        asset=asset_from_wire(schema, doc),
        created_at=created if isinstance(created, datetime) else None,
    )


@dataclass(frozen=True)
class CreateFields:
    values: Mapping[str, Any]

    @classmethod
    def of(cls, schema: Schema, raw: Mapping[str, Any]) -> "CreateFields":
        return cls(MappingProxyType(normalize_values(schema, raw)))


@dataclass(frozen=True)
class UpdateFields:
    """Full replacement of the non-asset fields of an existing record."""

    values: Mapping[str, Any]

    @classmethod
    def of(cls, schema: Schema, raw: Mapping[str, Any]) -> "UpdateFields":
        return cls(MappingProxyType(normalize_values(schema, raw)))


@dataclass(frozen=True)
class FormState:
    schema: Schema
    values: Mapping[str, Any]
    file: Optional[CandidateFile] = None
    editing_id: Optional[str] = None
    preview_url: Optional[str] = field(default=None, compare=False)

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def with_value(self, name: str, value: Any) -> "FormState":
        spec = self.schema.spec(name)
        values = dict(self.values)
        values[name] = normalize_multi(value) if spec.multi else ("" if value is None else str(value))
        return replace(self, values=MappingProxyType(values))

    def toggle(self, name: str, item: str) -> "FormState":
        """Add or remove one item of a multi-valued field."""
        spec = self.schema.spec(name)
        if not spec.multi:
            raise ValueError("not_a_multi_field")
        current = set(self.values.get(name) or [])
        current.symmetric_difference_update({item})
        return self.with_value(name, current)

    def with_file(self, file: Optional[CandidateFile]) -> "FormState":
        return replace(self, file=file)

    def editing(self, record: ResourceRecord) -> "FormState":
        """Load a stored record for editing; the stored asset becomes the preview."""
        values = {spec.name: record.values.get(spec.name) for spec in self.schema.fields}
        return FormState(
            schema=self.schema,
            values=MappingProxyType(normalize_values(self.schema, values)),
            editing_id=record.id,
            preview_url=record.asset.url if record.asset else None,
        )

    def to_create_fields(self) -> CreateFields:
        return CreateFields.of(self.schema, self.values)

    def to_update_fields(self) -> UpdateFields:
        if self.editing_id is None:
            raise ValueError("form_not_editing")
        return UpdateFields.of(self.schema, self.values)


def empty_form(schema: Schema) -> FormState:
    """Named reset value for a kind's form."""
    return FormState(schema=schema, values=MappingProxyType(normalize_values(schema, {})))


__all__ = [
    "AssetReference",
    "CandidateFile",
    "ResourceRecord",
    "CreateFields",
    "UpdateFields",
    "FormState",
    "empty_form",
    "normalize_multi",
    "normalize_values",
    "asset_to_wire",
    "asset_from_wire",
    "record_from_document",
]
