"""
Centralized storage configuration for the catalog blob bucket and upload limits.

Intent:
    Provide a single source of truth for the bucket name, the chunk size used by
    resumable uploads and the per-kind size limits, together with their
    environment-variable overrides. Prevents drift between the schemas, the
    Supabase adapters and the tests.

Behavior:
    - ASSETS_BUCKET_DEFAULT defines the canonical bucket ("genius-assets").
    - Size limits default to the published contract and are clamped to it:
      overrides may tighten a limit, never widen it.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations

import os


ASSETS_BUCKET_DEFAULT = "genius-assets"

IMAGE_MAX_UPLOAD_BYTES_CONTRACT = 5 * 1024 * 1024
MATERIAL_MAX_UPLOAD_BYTES_CONTRACT = 25 * 1024 * 1024

# Supabase's resumable endpoint expects 6 MiB chunks (the last one may be shorter).
UPLOAD_CHUNK_BYTES_DEFAULT = 6 * 1024 * 1024


def get_assets_bucket() -> str:
    """Return the configured assets bucket name.

    Env:
        SUPABASE_STORAGE_BUCKET: optional override; otherwise defaults to
        ASSETS_BUCKET_DEFAULT.
    """
    return (os.getenv("SUPABASE_STORAGE_BUCKET") or ASSETS_BUCKET_DEFAULT).strip()


def get_supabase_url() -> str:
    return (os.getenv("SUPABASE_URL") or "").strip().rstrip("/")


def get_service_role_key() -> str:
    return (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()


def _parse_int_env(name: str, default: int, *, contract_max: int | None = None) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    if isinstance(contract_max, int) and contract_max > 0:
        value = min(value, contract_max)
    return value


def get_image_max_upload_bytes() -> int:
    """Maximum upload size for photos and thumbnails (default/clamped 5 MiB)."""
    contract_max = IMAGE_MAX_UPLOAD_BYTES_CONTRACT
    return _parse_int_env("IMAGE_MAX_UPLOAD_BYTES", contract_max, contract_max=contract_max)


def get_material_max_upload_bytes() -> int:
    """Maximum upload size for study material files (default/clamped 25 MiB)."""
    contract_max = MATERIAL_MAX_UPLOAD_BYTES_CONTRACT
    return _parse_int_env("MATERIAL_MAX_UPLOAD_BYTES", contract_max, contract_max=contract_max)


def get_upload_chunk_bytes() -> int:
    """Chunk size for resumable uploads (default 6 MiB)."""
    return _parse_int_env("UPLOAD_CHUNK_BYTES", UPLOAD_CHUNK_BYTES_DEFAULT)


__all__ = [
    "ASSETS_BUCKET_DEFAULT",
    "IMAGE_MAX_UPLOAD_BYTES_CONTRACT",
    "MATERIAL_MAX_UPLOAD_BYTES_CONTRACT",
    "UPLOAD_CHUNK_BYTES_DEFAULT",
    "get_assets_bucket",
    "get_supabase_url",
    "get_service_role_key",
    "get_image_max_upload_bytes",
    "get_material_max_upload_bytes",
    "get_upload_chunk_bytes",
]
