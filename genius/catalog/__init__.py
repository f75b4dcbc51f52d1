"""Catalog context: the four admin-managed resource kinds and their repository.

Re-export the types most callers need.
"""

from .errors import (
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
from .records import CandidateFile, CreateFields, FormState, ResourceRecord, UpdateFields, empty_form
from .schemas import SCHEMAS, ResourceKind, Schema, schema_for

__all__ = [
    "CatalogError",
    "LoadError",
    "PersistenceError",
    "RecordNotFound",
    "UnsupportedOperation",
    "UploadCancelled",
    "UploadError",
    "ValidationError",
    "ValidationReason",
    "CandidateFile",
    "CreateFields",
    "FormState",
    "ResourceRecord",
    "UpdateFields",
    "empty_form",
    "SCHEMAS",
    "ResourceKind",
    "Schema",
    "schema_for",
]
