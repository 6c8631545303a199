from __future__ import annotations

import io
import logging
import os
import re
from typing import Any, BinaryIO, Dict, NoReturn, Optional
from urllib.parse import quote

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from ..dependencies.services import get_document_service
from ..errors import DocumentError, ErrorKind
from ..services.documents import PDF_MEDIA_TYPE, DocumentService
from ..services.metadata import DocumentRecord

logger = logging.getLogger(__name__)

router = APIRouter()

READ_CHUNK_BYTES = 1024 * 1024

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_MEDIA_TYPE: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.IO_FAILURE: 500,
    ErrorKind.METADATA_WRITE_FAILURE: 500,
    ErrorKind.METADATA_READ_FAILURE: 500,
    ErrorKind.BLOB_MISSING: 500,
}


def _raise_http(exc: DocumentError) -> NoReturn:
    status = STATUS_BY_KIND[exc.kind]
    if status >= 500:
        logger.error("Document operation failed", extra={"error_kind": exc.kind.value}, exc_info=exc)
    raise HTTPException(status_code=status, detail=exc.message, headers={"X-Error-Kind": exc.kind.value}) from exc


def _parse_document_id(doc_id: str) -> int:
    try:
        value = int(doc_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid document id") from exc
    if value < 1:
        raise HTTPException(status_code=400, detail="Invalid document id")
    return value


def _read_capped(source: BinaryIO, limit: int) -> bytes:
    """Read until EOF or until more than ``limit`` bytes have arrived."""
    buffer = io.BytesIO()
    total_bytes = 0
    while total_bytes <= limit:
        chunk = source.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total_bytes += len(chunk)
        buffer.write(chunk)
    return buffer.getvalue()


def _content_disposition(filename: str) -> str:
    fallback = re.sub(r'[^A-Za-z0-9._ -]', "_", os.path.basename(filename)) or "document.pdf"
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def _serialize_document(document: DocumentRecord) -> Dict[str, Any]:
    return {
        "id": document.id,
        "filename": document.original_name,
        "filesize": document.size_bytes,
        "created_at": document.created_at.isoformat(),
    }


@router.post("/documents/upload", status_code=201)
def upload_document(
    file: Optional[UploadFile] = File(default=None),
    service: DocumentService = Depends(get_document_service),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded or invalid file type")
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename required")

    try:
        data = _read_capped(file.file, service.max_upload_bytes)
    finally:
        file.file.close()

    try:
        document = service.upload(data, file.filename, file.content_type)
    except DocumentError as exc:
        _raise_http(exc)

    payload = _serialize_document(document)
    payload["message"] = "File uploaded successfully"
    return payload


@router.get("/documents")
def list_documents(service: DocumentService = Depends(get_document_service)):
    try:
        documents = service.list()
    except DocumentError as exc:
        _raise_http(exc)
    return [_serialize_document(document) for document in documents]


@router.get("/documents/{doc_id}")
def download_document(doc_id: str, service: DocumentService = Depends(get_document_service)):
    document_id = _parse_document_id(doc_id)
    try:
        fetched = service.fetch(document_id)
    except DocumentError as exc:
        _raise_http(exc)

    headers = {
        "Content-Disposition": _content_disposition(fetched.document.original_name),
        "Content-Length": str(fetched.content_length),
    }

    background = BackgroundTasks()
    background.add_task(fetched.close)
    return StreamingResponse(
        fetched.iter_chunks(),
        media_type=PDF_MEDIA_TYPE,
        headers=headers,
        background=background,
    )


@router.delete("/documents/{doc_id}")
def delete_document(doc_id: str, service: DocumentService = Depends(get_document_service)):
    document_id = _parse_document_id(doc_id)
    try:
        service.delete(document_id)
    except DocumentError as exc:
        _raise_http(exc)
    return {"message": "Document deleted successfully"}
