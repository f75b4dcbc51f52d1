"""
ResourceRepository orchestration: ordering of validate/upload/write, delete
semantics, refresh after mutations and the operation state tracker.
"""
from __future__ import annotations

from typing import List

import pytest

from genius.catalog.errors import (
    LoadError,
    PersistenceError,
    RecordNotFound,
    UnsupportedOperation,
    UploadError,
    ValidationError,
    ValidationReason,
)
from genius.catalog.records import CreateFields, UpdateFields
from genius.catalog.schemas import ResourceKind, schema_for
from genius.catalog.services.resources import Operation, Phase

MB = 1024 * 1024

pytestmark = pytest.mark.anyio


def _teacher(**values) -> CreateFields:
    return CreateFields.of(schema_for(ResourceKind.TEACHER), {"name": "Asha", **values})


async def test_material_scenario_newest_first_with_resolvable_file(material_repo, blobs, pdf):
    schema = material_repo.schema
    await material_repo.create(
        CreateFields.of(schema, {"title": "Older", "subject": "Science"}), pdf(name="old.pdf")
    )
    data = pdf(size=2 * MB, name="Algebra Notes.pdf")
    new_id = await material_repo.create(
        CreateFields.of(schema, {"title": "Algebra Notes", "subject": "Maths"}), data
    )

    records = await material_repo.list()
    first = records[0]
    assert first.id == new_id
    assert first.values["title"] == "Algebra Notes"
    assert first.asset.mime_type == "application/pdf"
    assert first.asset.original_file_name == "Algebra Notes.pdf"
    assert blobs.read(first.asset.url) == data.data
    assert first.created_at >= records[1].created_at


async def test_oversized_teacher_photo_touches_no_store(teacher_repo, documents, blobs, jpeg):
    op = Operation()
    with pytest.raises(ValidationError) as exc:
        await teacher_repo.create(_teacher(), jpeg(size=6 * MB), operation=op)
    assert exc.value.reason is ValidationReason.TOO_LARGE
    assert blobs.objects == {}
    assert await documents.query("teachers", order_by="createdAt") == []
    assert op.phase is Phase.FAILED and op.error == "too_large"


async def test_failed_update_validation_changes_nothing(teacher_repo, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(description="before"), jpeg())
    stored = dict(blobs.objects)
    schema = teacher_repo.schema
    with pytest.raises(ValidationError):
        await teacher_repo.update(
            record_id,
            UpdateFields.of(schema, {"name": "Asha", "description": "after"}),
            jpeg(size=6 * MB),
        )
    record = await teacher_repo.get(record_id)
    assert record.values["description"] == "before"
    assert blobs.objects == stored


async def test_update_without_photo_keeps_photo_url(teacher_repo, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(description="Maths teacher"), jpeg())
    before = await teacher_repo.get(record_id)

    schema = teacher_repo.schema
    await teacher_repo.update(record_id, UpdateFields.of(schema, {"name": "Asha", "description": "Senior"}))

    after = await teacher_repo.get(record_id)
    assert after.values["description"] == "Senior"
    assert after.asset == before.asset
    assert after.created_at == before.created_at
    assert blobs.deleted_urls == []


async def test_update_with_new_photo_replaces_and_deletes_old_blob(teacher_repo, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(), jpeg(name="old.jpg"))
    old_url = (await teacher_repo.get(record_id)).asset.url

    await teacher_repo.update(
        record_id, UpdateFields.of(teacher_repo.schema, {"name": "Asha"}), jpeg(size=10, name="new.jpg")
    )

    new_url = (await teacher_repo.get(record_id)).asset.url
    assert new_url != old_url
    assert blobs.read(new_url) == b"\xff" * 10
    assert blobs.deleted_urls == [old_url]


@pytest.mark.parametrize("kind", [ResourceKind.MATERIAL, ResourceKind.LECTURE, ResourceKind.RESULT])
async def test_only_teachers_support_update(repositories, kind):
    repo = repositories[kind]
    op = Operation()
    with pytest.raises(UnsupportedOperation):
        await repo.update("any", UpdateFields.of(repo.schema, {}), operation=op)
    assert op.phase is Phase.FAILED


async def test_upload_failure_writes_no_document(teacher_repo, documents, blobs, jpeg):
    blobs.fail_upload = True
    with pytest.raises(UploadError):
        await teacher_repo.create(_teacher(), jpeg())
    assert await documents.query("teachers", order_by="createdAt") == []


async def test_insert_failure_discards_fresh_blob(teacher_repo, documents, blobs, jpeg):
    documents.fail_next.add("insert")
    with pytest.raises(PersistenceError):
        await teacher_repo.create(_teacher(), jpeg())
    assert blobs.objects == {}
    assert len(blobs.deleted_urls) == 1


async def test_create_without_file_is_allowed_where_asset_is_optional(repositories):
    repo = repositories[ResourceKind.LECTURE]
    record_id = await repo.create(
        CreateFields.of(repo.schema, {"title": "Fractions", "videoURL": "https://youtu.be/abcdefghijk"})
    )
    record = await repo.get(record_id)
    assert record.asset is None
    assert repo.snapshot[0].id == record_id


async def test_remove_deletes_document_then_blob_once(teacher_repo, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(), jpeg())
    url = (await teacher_repo.get(record_id)).asset.url

    await teacher_repo.remove(record_id)

    assert [r.id for r in await teacher_repo.list()] == []
    assert blobs.deleted_urls == [url]
    assert blobs.objects == {}


async def test_remove_succeeds_when_blob_delete_fails(teacher_repo, blobs, caplog, jpeg):
    record_id = await teacher_repo.create(_teacher(), jpeg())
    blobs.fail_delete = True
    caplog.set_level("WARNING", logger="genius.catalog")

    await teacher_repo.remove(record_id)

    assert await teacher_repo.list() == []
    assert len(blobs.deleted_urls) == 1
    assert any("Blob cleanup" in r.getMessage() for r in caplog.records)


async def test_remove_without_asset_attempts_no_blob_delete(repositories, blobs):
    repo = repositories[ResourceKind.RESULT]
    record_id = await repo.create(CreateFields.of(repo.schema, {"studentName": "Ravi"}))
    await repo.remove(record_id)
    assert blobs.deleted_urls == []


async def test_remove_surfaces_document_delete_failure(teacher_repo, documents, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(), jpeg())
    documents.fail_next.add("delete")
    with pytest.raises(PersistenceError):
        await teacher_repo.remove(record_id)
    assert blobs.deleted_urls == []
    assert [r.id for r in await teacher_repo.list()] == [record_id]


async def test_remove_unknown_id_raises_not_found(teacher_repo):
    with pytest.raises(RecordNotFound):
        await teacher_repo.remove("missing")


async def test_list_is_idempotent_and_refresh_degrades_to_empty(teacher_repo, documents):
    for name in ("A", "B", "C"):
        await teacher_repo.create(_teacher(name=name))
    first = await teacher_repo.list()
    second = await teacher_repo.list()
    schema = teacher_repo.schema
    assert [r.to_wire(schema) for r in first] == [r.to_wire(schema) for r in second]
    assert [r.values["name"] for r in first] == ["C", "B", "A"]

    documents.fail_next.add("query")
    with pytest.raises(LoadError):
        await teacher_repo.list()
    documents.fail_next.add("query")
    assert await teacher_repo.refresh() == ()


async def test_operation_walks_through_phases_with_progress(teacher_repo, jpeg):
    op = Operation()
    ratios: List[float] = []
    await teacher_repo.create(_teacher(), jpeg(size=4096), operation=op, on_progress=ratios.append)
    assert op.phase is Phase.DONE
    assert op.progress == 1.0 and op.record_id
    assert ratios[-1] == 1.0
    assert op.to_dict()["progress"] == 100


def test_operation_rejects_illegal_transitions():
    op = Operation()
    with pytest.raises(RuntimeError):
        op.move(Phase.DONE)
    op.move(Phase.VALIDATING)
    op.move(Phase.PERSISTING)
    op.move(Phase.DONE)
    with pytest.raises(RuntimeError):
        op.move(Phase.UPLOADING)
    assert not op.cancel()


async def test_cancel_through_operation_aborts_create(teacher_repo, documents, blobs, jpeg):
    op = Operation()

    def on_progress(ratio: float) -> None:
        if 0 < ratio < 1:
            op.cancel()

    with pytest.raises(UploadError) as exc:
        await teacher_repo.create(_teacher(), jpeg(size=8192), operation=op, on_progress=on_progress)
    assert exc.value.code == "upload_cancelled"
    assert op.phase is Phase.FAILED
    assert blobs.objects == {}
    assert await documents.query("teachers", order_by="createdAt") == []


async def test_failed_photo_upload_on_update_keeps_record_and_blob(teacher_repo, blobs, jpeg):
    record_id = await teacher_repo.create(_teacher(description="before"), jpeg(name="old.jpg"))
    before = await teacher_repo.get(record_id)
    stored = dict(blobs.objects)

    blobs.fail_upload = True
    op = Operation()
    with pytest.raises(UploadError):
        await teacher_repo.update(
            record_id,
            UpdateFields.of(teacher_repo.schema, {"name": "Asha", "description": "after"}),
            jpeg(size=4096, name="new.jpg"),
            operation=op,
        )

    after = await teacher_repo.get(record_id)
    assert after.values["description"] == "before"
    assert after.asset == before.asset
    assert blobs.objects == stored
    assert blobs.deleted_urls == []
    assert op.phase is Phase.FAILED and op.error == "upload_failed"


async def test_cancel_accepted_after_last_chunk_still_aborts_create(teacher_repo, documents, blobs, jpeg):
    op = Operation()
    accepted: List[bool] = []
    resolve = blobs.resolve_public_url

    async def _resolve_then_cancel(handle: str) -> str:
        accepted.append(op.cancel())
        return await resolve(handle)

    blobs.resolve_public_url = _resolve_then_cancel
    with pytest.raises(UploadError) as exc:
        await teacher_repo.create(_teacher(), jpeg(), operation=op)

    assert accepted == [True]
    assert exc.value.code == "upload_cancelled"
    assert op.phase is Phase.FAILED
    assert blobs.objects == {}
    assert await documents.query("teachers", order_by="createdAt") == []
