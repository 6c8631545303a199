from __future__ import annotations

from typing import Iterator

import pytest
from typer.testing import CliRunner

from docshelf.cli import app
from docshelf.config import get_settings
from docshelf.main import build_document_service
from tests.utils import make_pdf

runner = CliRunner()


@pytest.fixture()
def cli_env(tmp_path, monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("STORAGE_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("METADATA_PATH", str(tmp_path / "meta.sqlite"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    get_settings.cache_clear()
    try:
        yield
    finally:
        get_settings.cache_clear()


def test_init_db_creates_storage(cli_env, tmp_path) -> None:
    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "files").is_dir()
    assert (tmp_path / "meta.sqlite").exists()


def test_list_prints_documents(cli_env) -> None:
    service = build_document_service(get_settings())
    service.upload(make_pdf(), "first.pdf", "application/pdf")

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0, result.output
    assert "first.pdf" in result.output


def test_list_when_empty(cli_env) -> None:
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "No documents stored" in result.output


def test_reconcile_flags_orphans_without_deleting(cli_env, tmp_path) -> None:
    service = build_document_service(get_settings())
    service.upload(make_pdf(), "kept.pdf", "application/pdf")
    orphan_key = service.blobs.put(make_pdf(), ".pdf")

    result = runner.invoke(app, ["reconcile"])

    assert result.exit_code == 1
    assert f"orphan blob: {orphan_key}" in result.output
    assert (tmp_path / "files" / orphan_key).exists()


def test_reconcile_consistent(cli_env) -> None:
    result = runner.invoke(app, ["reconcile"])

    assert result.exit_code == 0
    assert "consistent" in result.output


def test_reconcile_reports_size_mismatch(cli_env, tmp_path) -> None:
    service = build_document_service(get_settings())
    document = service.upload(make_pdf(b"C" * 64), "resized.pdf", "application/pdf")
    (tmp_path / "files" / document.storage_key).write_bytes(b"tiny")

    result = runner.invoke(app, ["reconcile"])

    assert result.exit_code == 1
    assert f"size mismatch: document {document.id} (resized.pdf)" in result.output
