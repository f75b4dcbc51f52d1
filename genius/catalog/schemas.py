"""
Per-kind schemas for the four catalog resource kinds.

One `Schema` value describes everything the generic repository needs to know
about a kind: its collection, blob folder, editable fields, where the asset
reference lives on the wire, the file acceptance rules and whether records
may be edited after creation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from genius.storage.config import get_image_max_upload_bytes, get_material_max_upload_bytes


class ResourceKind(str, Enum):
    TEACHER = "teacher"
    MATERIAL = "material"
    LECTURE = "lecture"
    RESULT = "result"


CLASS_OPTIONS: Tuple[str, ...] = tuple(f"Std {i}" for i in range(1, 13))
SUBJECT_OPTIONS: Tuple[str, ...] = ("English", "Maths", "Science", "SS", "Gujarati")
MEDIUM_OPTIONS: Tuple[str, ...] = ("English Medium", "Gujarati Medium")

IMAGE_MIME_TYPES: FrozenSet[str] = frozenset({"image/jpeg", "image/png", "image/jpg"})
THUMBNAIL_MIME_TYPES: FrozenSet[str] = IMAGE_MIME_TYPES | {"image/webp"}
MATERIAL_MIME_TYPES: FrozenSet[str] = frozenset(
    {
        "application/pdf",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
) | IMAGE_MIME_TYPES


@dataclass(frozen=True)
class UploadRules:
    """File acceptance rules: exact MIME allow-list and a byte ceiling."""

    allowed_mime_types: FrozenSet[str]
    max_bytes: int


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    required: bool = False
    multi: bool = False
    choices: Optional[Tuple[str, ...]] = None
    default: str = ""


@dataclass(frozen=True)
class AssetSlot:
    """Wire fields holding the asset reference of a record."""

    url_field: str
    name_field: Optional[str] = None
    type_field: Optional[str] = None
    required: bool = False

    @property
    def wire_fields(self) -> Tuple[str, ...]:
        return tuple(f for f in (self.url_field, self.name_field, self.type_field) if f)


@dataclass(frozen=True)
class Schema:
    kind: ResourceKind
    label: str
    collection: str
    folder: str
    fields: Tuple[FieldSpec, ...]
    asset: AssetSlot
    rules: UploadRules
    supports_update: bool = False
    title_field: str = "title"
    order_field: str = "createdAt"
    _by_name: Dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {f.name: f for f in self.fields})

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def spec(self, name: str) -> FieldSpec:
        return self._by_name[name]

    def has_field(self, name: str) -> bool:
        return name in self._by_name


def _teacher_schema() -> Schema:
    return Schema(
        kind=ResourceKind.TEACHER,
        label="Teacher",
        collection="teachers",
        folder="teachers",
        fields=(
            FieldSpec("name", "Teacher name", required=True),
            FieldSpec("qualification", "Qualification"),
            FieldSpec("experience", "Experience"),
            FieldSpec("description", "Description"),
            FieldSpec("medium", "Medium", choices=MEDIUM_OPTIONS, default=MEDIUM_OPTIONS[0]),
            FieldSpec("classes", "Classes", multi=True),
            FieldSpec("subjects", "Subjects", multi=True),
        ),
        asset=AssetSlot(url_field="photoURL"),
        rules=UploadRules(IMAGE_MIME_TYPES, get_image_max_upload_bytes()),
        supports_update=True,
        title_field="name",
    )


def _material_schema() -> Schema:
    return Schema(
        kind=ResourceKind.MATERIAL,
        label="Material",
        collection="materials",
        folder="materials",
        fields=(
            FieldSpec("title", "Title", required=True),
            FieldSpec("description", "Description"),
            FieldSpec("subject", "Subject", required=True),
            FieldSpec("className", "Class"),
        ),
        asset=AssetSlot(url_field="fileURL", name_field="fileName", type_field="fileType", required=True),
        rules=UploadRules(MATERIAL_MIME_TYPES, get_material_max_upload_bytes()),
    )


def _lecture_schema() -> Schema:
    return Schema(
        kind=ResourceKind.LECTURE,
        label="Lecture",
        collection="lectures",
        folder="lecture-thumbnails",
        fields=(
            FieldSpec("title", "Title", required=True),
            FieldSpec("description", "Description"),
            FieldSpec("subject", "Subject"),
            FieldSpec("className", "Class"),
            FieldSpec("videoURL", "Video URL", required=True),
        ),
        asset=AssetSlot(url_field="thumbnailURL"),
        rules=UploadRules(THUMBNAIL_MIME_TYPES, get_image_max_upload_bytes()),
    )


def _result_schema() -> Schema:
    return Schema(
        kind=ResourceKind.RESULT,
        label="Result",
        collection="results",
        folder="results",
        fields=(
            FieldSpec("studentName", "Student name", required=True),
            FieldSpec("className", "Class"),
            FieldSpec("percentage", "Percentage"),
            FieldSpec("year", "Year"),
            FieldSpec("achievement", "Achievement"),
        ),
        asset=AssetSlot(url_field="photoURL"),
        rules=UploadRules(IMAGE_MIME_TYPES, get_image_max_upload_bytes()),
        title_field="studentName",
    )


def build_schemas() -> Dict[ResourceKind, Schema]:
    """Build the schema table, reading size limits from the environment."""
    return {
        ResourceKind.TEACHER: _teacher_schema(),
        ResourceKind.MATERIAL: _material_schema(),
        ResourceKind.LECTURE: _lecture_schema(),
        ResourceKind.RESULT: _result_schema(),
    }


SCHEMAS: Dict[ResourceKind, Schema] = build_schemas()


def schema_for(kind: str | ResourceKind) -> Schema:
    """Return the schema for a kind name; raises LookupError for unknown kinds."""
    try:
        return SCHEMAS[ResourceKind(kind)]
    except ValueError as exc:
        raise LookupError("unknown_kind") from exc


__all__ = [
    "ResourceKind",
    "CLASS_OPTIONS",
    "SUBJECT_OPTIONS",
    "MEDIUM_OPTIONS",
    "UploadRules",
    "FieldSpec",
    "AssetSlot",
    "Schema",
    "SCHEMAS",
    "build_schemas",
    "schema_for",
]
