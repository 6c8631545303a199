from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import MetadataReadFailure, MetadataWriteFailure, NotFound
from ..models.base import Base
from ..models.documents import Document

logger = logging.getLogger(__name__)

UTC = timezone.utc


def _ensure_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(frozen=True)
class DocumentRecord:
    id: int
    original_name: str
    storage_key: str
    size_bytes: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: Document) -> "DocumentRecord":
        return cls(
            id=row.id,
            original_name=row.filename,
            storage_key=row.filepath,
            size_bytes=row.filesize,
            created_at=_ensure_utc(row.created_at),
        )


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


class MetadataStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def insert(self, original_name: str, storage_key: str, size_bytes: int, created_at: datetime) -> DocumentRecord:
        row = Document(
            filename=original_name,
            filepath=storage_key,
            filesize=size_bytes,
            created_at=_ensure_utc(created_at),
        )
        with self._session_factory() as session:
            try:
                session.add(row)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise MetadataWriteFailure() from exc
            return DocumentRecord.from_row(row)

    def list(self) -> list[DocumentRecord]:
        stmt = select(Document).order_by(Document.created_at.desc(), Document.id.desc())
        with self._session_factory() as session:
            try:
                rows = session.execute(stmt).scalars().all()
            except SQLAlchemyError as exc:
                raise MetadataReadFailure() from exc
            return [DocumentRecord.from_row(row) for row in rows]

    def get(self, document_id: int) -> DocumentRecord:
        with self._session_factory() as session:
            try:
                row = session.get(Document, document_id)
            except SQLAlchemyError as exc:
                raise MetadataReadFailure("Failed to fetch document") from exc
            if row is None:
                raise NotFound()
            return DocumentRecord.from_row(row)

    def delete(self, document_id: int) -> None:
        with self._session_factory() as session:
            try:
                deleted = session.query(Document).filter(Document.id == document_id).delete(synchronize_session=False)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise MetadataWriteFailure("Failed to delete from database") from exc
        if not deleted:
            raise NotFound()

    def storage_keys(self) -> set[str]:
        with self._session_factory() as session:
            try:
                return set(session.execute(select(Document.filepath)).scalars().all())
            except SQLAlchemyError as exc:
                raise MetadataReadFailure() from exc
