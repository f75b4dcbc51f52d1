"""
Advisory validation of admin input before any network call.

The MIME check trusts the type declared by the client and compares it exactly
against the allow-list; the file content is never inspected and the extension
is ignored. This is a known weak point of the upload path, kept as is: the
stores perform no validation of their own.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from .errors import ValidationError, ValidationReason
from .records import CandidateFile
from .schemas import Schema, UploadRules


def validate_file(file: CandidateFile, rules: UploadRules) -> None:
    """Raise ValidationError when `file` breaks `rules`; return None otherwise."""
    if file.mime_type not in rules.allowed_mime_types:
        raise ValidationError(ValidationReason.UNSUPPORTED_TYPE)
    if file.size > rules.max_bytes:
        raise ValidationError(ValidationReason.TOO_LARGE, limit=rules.max_bytes)


def validate_fields(
    schema: Schema,
    values: Mapping[str, Any],
    file: Optional[CandidateFile] = None,
    *,
    creating: bool = True,
) -> None:
    """Check required fields, choice lists and, on create, a required asset."""
    for spec in schema.fields:
        value = values.get(spec.name)
        if spec.required:
            empty = not value if spec.multi else not str(value or "").strip()
            if empty:
                raise ValidationError(ValidationReason.MISSING_FIELD, field=spec.name, label=spec.label)
        if spec.choices and not spec.multi and value and value not in spec.choices:
            raise ValidationError(ValidationReason.INVALID_CHOICE, field=spec.name, label=spec.label)
    if creating and schema.asset.required and file is None:
        raise ValidationError(ValidationReason.MISSING_FILE)


__all__ = ["validate_file", "validate_fields"]
