"""
Helpers to generate blob paths for uploaded catalog assets.

Why:
    Keep path shapes consistent across resource kinds. The millisecond prefix
    keeps two uploads of identically named files apart and gives raw blobs a
    coarse chronological order that does not depend on document records.

Conventions:
    - {folder}/{epoch_ms}_{original_file_name}
      e.g. teachers/1718000000000_photo.jpg, materials/1718000000000_Algebra Notes.pdf

Security:
    - Only the base name of the uploaded file is kept; directory parts and
      backslashes are dropped so a name cannot escape its folder.
    - Control characters are removed. Other characters are preserved so the
      stored name stays recognizable to the uploader.
"""
from __future__ import annotations

import re
import time
import unicodedata

_SEGMENT_RE = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_segment(value: str, *, fallback: str = "x") -> str:
    value = value or ""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii")
    sanitized = _SEGMENT_RE.sub("-", ascii_value).strip("-_.")
    return sanitized or fallback


def base_file_name(filename: str | None, *, fallback: str = "file") -> str:
    """Return the last path component of a client-supplied file name."""
    name = (filename or "").replace("\\", "/").split("/")[-1]
    name = "".join(ch for ch in name if unicodedata.category(ch) != "Cc").strip()
    if name in {"", ".", ".."}:
        return fallback
    return name


def now_ms() -> int:
    return int(time.time() * 1000)


def make_blob_path(*, folder: str, filename: str, epoch_ms: int | None = None) -> str:
    """Build the storage path for an uploaded asset.

    Returns: {folder}/{epoch_ms}_{filename}
    """
    f = _sanitize_segment(folder, fallback="assets")
    stamp = epoch_ms if epoch_ms is not None else now_ms()
    return f"{f}/{stamp}_{base_file_name(filename)}"


__all__ = ["base_file_name", "make_blob_path", "now_ms"]
