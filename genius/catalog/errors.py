"""
Error taxonomy for catalog administration.

Each error carries a stable `code` (used in API payloads and logs) and a short,
non-technical `user_message`. Transport details stay on `cause` and are never
shown to users.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ValidationReason(str, Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    MISSING_FIELD = "missing_field"
    MISSING_FILE = "missing_file"
    INVALID_CHOICE = "invalid_choice"


_VALIDATION_MESSAGES = {
    ValidationReason.UNSUPPORTED_TYPE: "This file type is not accepted.",
    ValidationReason.TOO_LARGE: "The file is too large.",
    ValidationReason.MISSING_FIELD: "Please fill in all required fields.",
    ValidationReason.MISSING_FILE: "Please select a file.",
    ValidationReason.INVALID_CHOICE: "Please pick one of the offered options.",
}


class CatalogError(Exception):
    code = "catalog_error"
    user_message = "Something went wrong. Please try again."

    def __init__(self, code: Optional[str] = None):
        super().__init__(code or self.code)
        if code:
            self.code = code


class ValidationError(CatalogError):
    """Raised before any network call when input breaks the acceptance rules."""

    def __init__(
        self,
        reason: ValidationReason,
        *,
        field: Optional[str] = None,
        label: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(reason.value)
        self.reason = reason
        self.field = field
        self.label = label
        self.limit = limit

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.reason is ValidationReason.MISSING_FIELD and self.label:
            return f"{self.label} is required."
        if self.reason is ValidationReason.TOO_LARGE and self.limit:
            return f"The file must be under {self.limit // (1024 * 1024)}MB."
        return _VALIDATION_MESSAGES[self.reason]


class UploadError(CatalogError):
    code = "upload_failed"
    user_message = "The file could not be uploaded. Please try again."

    def __init__(self, cause: Optional[BaseException] = None, code: Optional[str] = None):
        super().__init__(code)
        self.cause = cause


class UploadCancelled(UploadError):
    code = "upload_cancelled"
    user_message = "The upload was cancelled."


class PersistenceError(CatalogError):
    code = "persistence_failed"
    user_message = "The change could not be saved. Please try again."

    def __init__(self, cause: Optional[BaseException] = None, code: Optional[str] = None):
        super().__init__(code)
        self.cause = cause


class LoadError(PersistenceError):
    code = "load_failed"
    user_message = "The list could not be loaded."


class RecordNotFound(CatalogError, LookupError):
    code = "not_found"
    user_message = "This entry no longer exists."


class UnsupportedOperation(CatalogError):
    code = "update_not_supported"
    user_message = "Entries of this kind cannot be edited. Delete and add it again instead."


__all__ = [
    "ValidationReason",
    "CatalogError",
    "ValidationError",
    "UploadError",
    "UploadCancelled",
    "PersistenceError",
    "LoadError",
    "RecordNotFound",
    "UnsupportedOperation",
]
