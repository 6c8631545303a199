from __future__ import annotations

from fastapi import Request

from ..services.documents import DocumentService


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service
