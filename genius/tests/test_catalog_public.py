"""
Public catalog helpers: filters, file badges and lecture thumbnails.
"""
from __future__ import annotations

from types import MappingProxyType

import pytest

from genius.catalog.public import (
    distinct_values,
    extract_youtube_id,
    file_type_label,
    filter_records,
    lecture_thumbnail,
)
from genius.catalog.records import AssetReference, ResourceRecord
from genius.catalog.schemas import ResourceKind


def _record(kind: ResourceKind, asset=None, **values) -> ResourceRecord:
    return ResourceRecord(kind=kind, id=values.pop("id", "r"), values=MappingProxyType(values), asset=asset, created_at=None)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?t=10",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://youtube.com/shorts/dQw4w9WgXcQ",
    ],
)
def test_extract_youtube_id_supports_common_link_shapes(url):
    assert extract_youtube_id(url) == "dQw4w9WgXcQ"


def test_extract_youtube_id_rejects_other_links():
    assert extract_youtube_id("https://vimeo.com/123") is None
    assert extract_youtube_id("") is None
    assert extract_youtube_id("https://youtu.be/short") is None


def test_lecture_thumbnail_prefers_uploaded_image():
    uploaded = _record(
        ResourceKind.LECTURE,
        asset=AssetReference("https://cdn/t.png"),
        videoURL="https://youtu.be/dQw4w9WgXcQ",
    )
    derived = _record(ResourceKind.LECTURE, videoURL="https://youtu.be/dQw4w9WgXcQ")
    none = _record(ResourceKind.LECTURE, videoURL="https://example.org/v")
    assert lecture_thumbnail(uploaded) == "https://cdn/t.png"
    assert lecture_thumbnail(derived) == "https://img.youtube.com/vi/dQw4w9WgXcQ/mqdefault.jpg"
    assert lecture_thumbnail(none) is None


@pytest.mark.parametrize(
    "mime,label",
    [
        ("application/pdf", "PDF"),
        ("application/vnd.ms-powerpoint", "PPT"),
        ("application/vnd.openxmlformats-officedocument.presentationml.presentation", "PPT"),
        ("application/msword", "DOC"),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "DOC"),
        ("image/png", "IMG"),
        ("application/zip", "FILE"),
        (None, "FILE"),
    ],
)
def test_file_type_label(mime, label):
    assert file_type_label(mime) == label


def test_filter_records_by_subject_and_class():
    records = [
        _record(ResourceKind.LECTURE, id="1", subject="Maths", className="Std 5"),
        _record(ResourceKind.LECTURE, id="2", subject="Maths", className="Std 6"),
        _record(ResourceKind.LECTURE, id="3", subject="Science", className="Std 5"),
    ]
    assert [r.id for r in filter_records(records, subject="Maths")] == ["1", "2"]
    assert [r.id for r in filter_records(records, subject="Maths", class_name="Std 5")] == ["1"]
    assert [r.id for r in filter_records(records)] == ["1", "2", "3"]
    assert distinct_values(records, "className") == ["Std 5", "Std 6"]


def test_filter_teachers_by_membership():
    records = [
        _record(ResourceKind.TEACHER, id="a", subjects=["English", "Maths"], classes=["Std 1"]),
        _record(ResourceKind.TEACHER, id="b", subjects=["Science"], classes=["Std 1", "Std 2"]),
    ]
    assert [r.id for r in filter_records(records, subject="Maths")] == ["a"]
    assert [r.id for r in filter_records(records, class_name="Std 2")] == ["b"]
    assert distinct_values(records, "subjects") == ["English", "Maths", "Science"]
