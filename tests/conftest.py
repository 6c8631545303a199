from __future__ import annotations

import pathlib
import sys
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from docshelf.config import Settings
from docshelf.db.session import build_engine, build_session_factory
from docshelf.main import create_app
from docshelf.services.documents import DocumentService
from docshelf.services.metadata import MetadataStore, create_schema
from docshelf.services.storage import LocalBlobStore
from tests.utils import MAX_UPLOAD_BYTES, StepClock


@pytest.fixture()
def settings(tmp_path: pathlib.Path) -> Settings:
    """Settings pointing at throwaway storage and a throwaway SQLite file."""
    return Settings(
        storage_dir=tmp_path / "uploads",
        metadata_path=tmp_path / "database.sqlite",
        database_url=f"sqlite:///{tmp_path / 'database.sqlite'}",
        max_upload_bytes=MAX_UPLOAD_BYTES,
        metrics_enabled=True,
        sentry_dsn=None,
    )


@pytest.fixture()
def blob_store(settings: Settings) -> LocalBlobStore:
    return LocalBlobStore(settings.storage_dir)


@pytest.fixture()
def metadata_store(settings: Settings) -> Iterator[MetadataStore]:
    engine = build_engine(settings.database_url)
    create_schema(engine)
    try:
        yield MetadataStore(build_session_factory(engine))
    finally:
        engine.dispose()


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def service(blob_store: LocalBlobStore, metadata_store: MetadataStore, clock: StepClock) -> DocumentService:
    return DocumentService(blob_store, metadata_store, max_upload_bytes=MAX_UPLOAD_BYTES, clock=clock)


@pytest.fixture()
def client(settings: Settings, service: DocumentService) -> Iterator[TestClient]:
    """Provide a FastAPI TestClient bound to temporary storage."""
    app = create_app(settings, service=service)
    with TestClient(app) as _client:
        yield _client
