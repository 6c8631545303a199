from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import BinaryIO, Callable, Iterator

from ..errors import BlobMissing, InvalidMediaType, MetadataWriteFailure, NotFound, PayloadTooLarge
from .metadata import DocumentRecord, MetadataStore
from .storage import LocalBlobStore

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
DEFAULT_CHUNK_SIZE = 1024 * 64


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_media_type(value: str | None) -> str:
    """``"Application/PDF; charset=binary"`` -> ``"application/pdf"``."""
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()


@dataclass
class FetchedDocument:
    document: DocumentRecord
    stream: BinaryIO

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        while True:
            chunk = self.stream.read(chunk_size)
            if not chunk:
                break
            yield chunk

    @property
    def content_length(self) -> int:
        return os.fstat(self.stream.fileno()).st_size

    def read(self) -> bytes:
        return self.stream.read()

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "FetchedDocument":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass
class ReconciliationReport:
    orphan_blobs: list[str] = field(default_factory=list)
    missing_blobs: list[DocumentRecord] = field(default_factory=list)
    size_mismatches: list[DocumentRecord] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.orphan_blobs and not self.missing_blobs and not self.size_mismatches


class DocumentService:
    """Keeps the blob store and the metadata table consistent.

    A document exists for readers exactly when its metadata row exists.
    Uploads write the blob before the row; deletes remove the blob before
    the row. Nothing is retried and no compensating writes are attempted.
    """

    def __init__(
        self,
        blobs: LocalBlobStore,
        metadata: MetadataStore,
        max_upload_bytes: int,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.blobs = blobs
        self.metadata = metadata
        self.max_upload_bytes = max_upload_bytes
        self._clock = clock

    def upload(self, data: bytes, original_name: str, media_type: str | None) -> DocumentRecord:
        if normalize_media_type(media_type) != PDF_MEDIA_TYPE:
            raise InvalidMediaType()
        if len(data) > self.max_upload_bytes:
            raise PayloadTooLarge(f"File too large (limit {self.max_upload_bytes} bytes)")

        storage_key = self.blobs.put(data, PurePath(original_name).suffix)

        try:
            document = self.metadata.insert(
                original_name=original_name,
                storage_key=storage_key,
                size_bytes=len(data),
                created_at=self._clock(),
            )
        except MetadataWriteFailure:
            logger.error(
                "Orphaned blob after metadata write failure",
                extra={"storage_key": storage_key, "original_name": original_name},
                exc_info=True,
            )
            raise

        logger.info(
            "Document uploaded",
            extra={"document_id": document.id, "storage_key": storage_key, "size_bytes": document.size_bytes},
        )
        return document

    def list(self) -> list[DocumentRecord]:
        return self.metadata.list()

    def get(self, document_id: int) -> DocumentRecord:
        return self.metadata.get(document_id)

    def fetch(self, document_id: int) -> FetchedDocument:
        document = self.metadata.get(document_id)
        try:
            stream = self.blobs.open(document.storage_key)
        except NotFound as exc:
            logger.warning(
                "Metadata references a missing blob",
                extra={"document_id": document.id, "storage_key": document.storage_key},
            )
            raise BlobMissing() from exc
        return FetchedDocument(document=document, stream=stream)

    def delete(self, document_id: int) -> None:
        document = self.metadata.get(document_id)

        # IOFailure propagates here and leaves the row untouched.
        removed = self.blobs.delete(document.storage_key, missing_ok=True)
        if not removed:
            logger.warning(
                "Blob already absent during delete",
                extra={"document_id": document.id, "storage_key": document.storage_key},
            )

        try:
            self.metadata.delete(document.id)
        except MetadataWriteFailure:
            logger.error(
                "Metadata row left pointing at a removed blob",
                extra={"document_id": document.id, "storage_key": document.storage_key},
                exc_info=True,
            )
            raise

        logger.info("Document deleted", extra={"document_id": document.id})

    def reconcile(self) -> ReconciliationReport:
        """Report inconsistencies between the two stores without fixing them."""
        referenced = self.metadata.storage_keys()
        report = ReconciliationReport()
        report.orphan_blobs = [key for key in self.blobs.keys() if key not in referenced]
        for doc in self.metadata.list():
            if not self.blobs.exists(doc.storage_key):
                report.missing_blobs.append(doc)
            elif self.blobs.size(doc.storage_key) != doc.size_bytes:
                report.size_mismatches.append(doc)
        return report
