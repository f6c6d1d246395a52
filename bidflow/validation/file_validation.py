"""File validation for document batches.

Per-file rules (size, then format) and aggregate rules (count, estimated
transport size) applied before anything is encoded. The validator never
mutates its inputs.
"""

import logging
from dataclasses import dataclass
from typing import Final, Sequence

from bidflow.codec.payload_codec import estimate_batch_size
from bidflow.config.constants import (
    DOCUMENT_CONTENT_TYPES,
    DOCUMENT_EXTENSIONS,
    MAX_DOCUMENT_SIZE_MB,
    MAX_DOCUMENTS,
    MAX_PAYLOAD_SIZE_MB,
    MAX_UPLOAD_SIZE_MB,
    MIB,
    UPLOAD_CONTENT_TYPES,
    UPLOAD_EXTENSIONS,
)
from bidflow.core.exceptions import PayloadTooLargeError, ValidationError
from bidflow.models.dto import PayloadCheck, SourceFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilePolicy:
    """Accepted formats and size ceiling for one upload step.

    Attributes:
        max_size_mb: Largest accepted raw file size
        content_types: Accepted declared MIME types
        extensions: Accepted lowercase filename extensions
        format_hint: Tail of the "not a supported format" message
    """

    max_size_mb: int
    content_types: frozenset[str]
    extensions: frozenset[str]
    format_hint: str

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * MIB


DOCUMENT_POLICY: Final = FilePolicy(
    max_size_mb=MAX_DOCUMENT_SIZE_MB,
    content_types=DOCUMENT_CONTENT_TYPES,
    extensions=DOCUMENT_EXTENSIONS,
    format_hint="Please upload PDF or Word documents.",
)

UPLOAD_POLICY: Final = FilePolicy(
    max_size_mb=MAX_UPLOAD_SIZE_MB,
    content_types=UPLOAD_CONTENT_TYPES,
    extensions=UPLOAD_EXTENSIONS,
    format_hint="Please upload PDF, Word documents, or images (JPG, PNG, GIF).",
)


def validate_file(file: SourceFile, policy: FilePolicy = DOCUMENT_POLICY) -> str | None:
    """Check one file against ``policy``.

    Returns:
        None when the file is acceptable, otherwise a user-facing message.
        Size is checked first. A file passes the format rule when either
        its declared MIME type or its extension is accepted, since browsers
        and OSes often report empty or wrong MIME types.
    """
    if file.size > policy.max_size_bytes:
        return (
            f'File "{file.filename}" is too large. '
            f"Maximum size is {policy.max_size_mb}MB."
        )

    if (
        file.mime_type not in policy.content_types
        and file.extension not in policy.extensions
    ):
        return f'File "{file.filename}" is not a supported format. {policy.format_hint}'

    return None


def check_payload_limits(
    files: Sequence[SourceFile], max_payload_mb: int = MAX_PAYLOAD_SIZE_MB
) -> PayloadCheck:
    """Check the estimated encoded size of ``files`` against the ceiling."""
    estimated = estimate_batch_size(files)

    if estimated > max_payload_mb * MIB:
        error = PayloadTooLargeError(
            estimated_size_mb=estimated / MIB, max_size_mb=max_payload_mb
        )
        return PayloadCheck(valid=False, message=error.message, estimated_size=estimated)

    return PayloadCheck(valid=True, estimated_size=estimated)


def check_batch_count(files: Sequence[SourceFile], max_documents: int = MAX_DOCUMENTS) -> str | None:
    if not files:
        return "Please select at least one document."
    if len(files) > max_documents:
        return f"You can upload up to {max_documents} documents at a time."
    return None


def validate_batch(
    files: Sequence[SourceFile], policy: FilePolicy = DOCUMENT_POLICY
) -> PayloadCheck:
    """Run count, per-file and aggregate checks for a submission batch.

    Raises:
        ValidationError: With every per-file message when any check fails
        PayloadTooLargeError: When only the aggregate estimate is too large
    """
    count_error = check_batch_count(files)
    if count_error:
        raise ValidationError(message=count_error, field="documents")

    errors = [message for message in (validate_file(f, policy) for f in files) if message]
    if errors:
        logger.info("Rejected %d of %d files", len(errors), len(files))
        raise ValidationError(
            message=errors[0] if len(errors) == 1 else f"{len(errors)} files were rejected.",
            field="documents",
            errors=errors,
        )

    payload = check_payload_limits(files)
    if not payload.valid:
        raise PayloadTooLargeError(
            estimated_size_mb=payload.estimated_size / MIB,
            max_size_mb=MAX_PAYLOAD_SIZE_MB,
        )
    return payload
