from __future__ import annotations

import pathlib
from datetime import datetime, timezone
from typing import Iterator

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, text

from docshelf.config import get_settings
from docshelf.db.session import build_engine, build_session_factory
from docshelf.services.metadata import MetadataStore

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]


@pytest.fixture()
def migrated_url(tmp_path, monkeypatch) -> Iterator[str]:
    database_url = f"sqlite:///{tmp_path / 'migrated.sqlite'}"
    monkeypatch.setenv("DATABASE_URL", database_url)
    get_settings.cache_clear()

    # No ini file, so env.py leaves logging configuration alone.
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    try:
        command.upgrade(cfg, "head")
        yield database_url
    finally:
        get_settings.cache_clear()


def test_upgrade_creates_documents_table(migrated_url: str) -> None:
    engine = build_engine(migrated_url)
    try:
        columns = {column["name"] for column in inspect(engine).get_columns("documents")}
    finally:
        engine.dispose()

    assert columns == {"id", "filename", "filepath", "filesize", "created_at"}


def test_migrated_table_never_reuses_ids(migrated_url: str) -> None:
    engine = build_engine(migrated_url)
    store = MetadataStore(build_session_factory(engine))
    created_at = datetime(2026, 5, 1, tzinfo=timezone.utc)
    try:
        first = store.insert("a.pdf", "1-a.pdf", 1, created_at)
        second = store.insert("b.pdf", "2-b.pdf", 1, created_at)
        store.delete(second.id)
        third = store.insert("c.pdf", "3-c.pdf", 1, created_at)

        with engine.connect() as connection:
            sequence = connection.execute(
                text("SELECT seq FROM sqlite_sequence WHERE name = 'documents'")
            ).scalar_one()
    finally:
        engine.dispose()

    assert third.id > second.id > first.id
    assert sequence == third.id
