"""
FormState and write payload behavior: immutable updates, set semantics for
multi-valued fields, reset and edit loading.
"""
from __future__ import annotations

from datetime import datetime, timezone
from types import MappingProxyType

import pytest

from genius.catalog.records import (
    AssetReference,
    CreateFields,
    ResourceRecord,
    UpdateFields,
    empty_form,
    record_from_document,
)
from genius.catalog.schemas import ResourceKind, schema_for


def test_empty_form_applies_defaults():
    form = empty_form(schema_for(ResourceKind.TEACHER))
    assert form.values["medium"] == "English Medium"
    assert form.values["classes"] == []
    assert form.file is None and not form.is_editing


def test_with_value_returns_new_state_and_leaves_original_untouched():
    form = empty_form(schema_for(ResourceKind.TEACHER))
    named = form.with_value("name", "Asha")
    assert named.values["name"] == "Asha"
    assert form.values["name"] == ""
    with pytest.raises(TypeError):
        named.values["name"] = "x"  # type: ignore[index]


def test_toggle_has_set_semantics():
    form = empty_form(schema_for(ResourceKind.TEACHER))
    form = form.toggle("subjects", "Maths").toggle("subjects", "English").toggle("subjects", "Maths")
    assert form.values["subjects"] == ["English"]
    form = form.with_value("classes", ["Std 2", "Std 1", "Std 2"])
    assert form.values["classes"] == ["Std 1", "Std 2"]


def test_toggle_rejects_single_valued_fields():
    with pytest.raises(ValueError):
        empty_form(schema_for(ResourceKind.TEACHER)).toggle("name", "x")


def test_editing_loads_record_and_previews_stored_asset():
    schema = schema_for(ResourceKind.TEACHER)
    record = ResourceRecord(
        kind=ResourceKind.TEACHER,
        id="t1",
        values=MappingProxyType({"name": "Asha", "subjects": ["Maths"]}),
        asset=AssetReference(url="memory://blobs/teachers/1_a.jpg"),
        created_at=datetime.now(timezone.utc),
    )
    form = empty_form(schema).editing(record)
    assert form.editing_id == "t1"
    assert form.preview_url == "memory://blobs/teachers/1_a.jpg"
    assert form.values["subjects"] == ["Maths"]
    assert form.values["medium"] == "English Medium"
    update = form.with_value("experience", "5 years").to_update_fields()
    assert isinstance(update, UpdateFields)
    assert update.values["experience"] == "5 years"
    assert "photoURL" not in update.values


def test_update_fields_require_an_edit_target():
    with pytest.raises(ValueError):
        empty_form(schema_for(ResourceKind.TEACHER)).to_update_fields()


def test_create_fields_drop_unknown_and_asset_keys():
    schema = schema_for(ResourceKind.RESULT)
    fields = CreateFields.of(schema, {"studentName": " Ravi ", "photoURL": "http://evil", "admin": True})
    assert fields.values["studentName"] == "Ravi"
    assert "photoURL" not in fields.values and "admin" not in fields.values


def test_with_file_keeps_values(jpeg):
    form = empty_form(schema_for(ResourceKind.RESULT)).with_value("studentName", "Ravi").with_file(jpeg())
    assert form.file is not None and form.values["studentName"] == "Ravi"


def test_record_from_document_splits_asset_fields():
    schema = schema_for(ResourceKind.MATERIAL)
    created = datetime.now(timezone.utc)
    record = record_from_document(
        schema,
        {
            "id": 7,
            "title": "Algebra",
            "subject": "Maths",
            "fileURL": "https://x/a.pdf",
            "fileName": "a.pdf",
            "fileType": "application/pdf",
            "createdAt": created,
        },
    )
    assert record.id == "7"
    assert record.asset == AssetReference("https://x/a.pdf", "a.pdf", "application/pdf")
    assert "fileURL" not in record.values
    wire = record.to_wire(schema)
    assert wire["fileName"] == "a.pdf" and wire["createdAt"] == created.isoformat()
