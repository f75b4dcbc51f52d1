"""
Read-only helpers behind the public catalog pages.

Intent:
    The public site lists the same records the admin surface manages, filtered
    by subject and class. Lectures show a thumbnail: the uploaded one when
    present, otherwise the YouTube preview image derived from the video link.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

from .records import ResourceRecord

_YOUTUBE_PATTERNS = (
    re.compile(r"youtube\.com/watch\?v=([A-Za-z0-9_-]{11})"),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([A-Za-z0-9_-]{11})"),
)

YOUTUBE_THUMBNAIL_TEMPLATE = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"


def filter_records(
    records: Iterable[ResourceRecord],
    *,
    subject: Optional[str] = None,
    class_name: Optional[str] = None,
) -> List[ResourceRecord]:
    """Keep records matching every given filter; empty filters match all.

    Single-valued fields (`subject`, `className`) compare exactly; the
    multi-valued teacher fields (`subjects`, `classes`) match on membership.
    """

    def _matches(record: ResourceRecord, single: str, multi: str, wanted: Optional[str]) -> bool:
        if not wanted:
            return True
        if multi in record.values:
            return wanted in (record.values.get(multi) or [])
        return record.values.get(single) == wanted

    return [
        r
        for r in records
        if _matches(r, "subject", "subjects", subject) and _matches(r, "className", "classes", class_name)
    ]


def distinct_values(records: Iterable[ResourceRecord], name: str) -> List[str]:
    """Non-empty values of a field in first-seen order (filter dropdown options)."""
    seen: List[str] = []
    for record in records:
        value = record.values.get(name)
        items: Sequence = value if isinstance(value, (list, tuple)) else [value]
        for item in items:
            if item and item not in seen:
                seen.append(item)
    return seen


def file_type_label(mime_type: Optional[str]) -> str:
    """Short badge for a material file: PDF, PPT, DOC, IMG or FILE."""
    t = (mime_type or "").lower()
    if "pdf" in t:
        return "PDF"
    # Office presentation types also contain "officedocument"; check them before DOC.
    if "ppt" in t or "powerpoint" in t or "presentation" in t:
        return "PPT"
    if "doc" in t or "word" in t:
        return "DOC"
    if "image" in t or "png" in t or "jpg" in t:
        return "IMG"
    return "FILE"


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def lecture_thumbnail(record: ResourceRecord) -> Optional[str]:
    """Uploaded thumbnail first, then the YouTube preview, else None."""
    if record.asset is not None:
        return record.asset.url
    video_id = extract_youtube_id(record.values.get("videoURL"))
    if video_id:
        return YOUTUBE_THUMBNAIL_TEMPLATE.format(video_id=video_id)
    return None


__all__ = [
    "filter_records",
    "distinct_values",
    "file_type_label",
    "extract_youtube_id",
    "lecture_thumbnail",
    "YOUTUBE_THUMBNAIL_TEMPLATE",
]
