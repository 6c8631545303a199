"""Failure kinds raised by the document stores and service.

Every failure surfaced to callers carries exactly one :class:`ErrorKind`.
The HTTP layer maps kinds to status codes; nothing below it knows about HTTP.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_MEDIA_TYPE = "invalid_media_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    IO_FAILURE = "io_failure"
    METADATA_WRITE_FAILURE = "metadata_write_failure"
    METADATA_READ_FAILURE = "metadata_read_failure"
    NOT_FOUND = "not_found"
    BLOB_MISSING = "blob_missing"


class DocumentError(Exception):
    """Base class for all document failures."""

    kind: ErrorKind
    default_message = "Document operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidMediaType(DocumentError):
    kind = ErrorKind.INVALID_MEDIA_TYPE
    default_message = "Only PDF files are allowed"


class PayloadTooLarge(DocumentError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE
    default_message = "File too large"


class IOFailure(DocumentError):
    kind = ErrorKind.IO_FAILURE
    default_message = "File storage operation failed"


class MetadataWriteFailure(DocumentError):
    kind = ErrorKind.METADATA_WRITE_FAILURE
    default_message = "Failed to save metadata"


class MetadataReadFailure(DocumentError):
    kind = ErrorKind.METADATA_READ_FAILURE
    default_message = "Failed to fetch documents"


class NotFound(DocumentError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Document not found"


class BlobMissing(DocumentError):
    """Metadata exists but the stored file does not."""

    kind = ErrorKind.BLOB_MISSING
    default_message = "Document file is missing from storage"
