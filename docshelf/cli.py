from __future__ import annotations

from typing import Optional

import typer
import uvicorn

from .config import get_settings
from .main import build_document_service

app = typer.Typer(help="Docshelf administrative CLI")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listening port (defaults to PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Run the HTTP API."""
    settings = get_settings()
    uvicorn.run(
        "docshelf.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@app.command("init-db")
def init_db() -> None:
    """Create the documents table and the storage directory."""
    settings = get_settings()
    build_document_service(settings)
    typer.echo(f"Metadata ready at {settings.database_url}; files stored in {settings.storage_dir}")


@app.command("list")
def list_documents() -> None:
    """Print stored documents, newest first."""
    service = build_document_service(get_settings())
    documents = service.list()
    if not documents:
        typer.echo("No documents stored")
        return
    for document in documents:
        typer.echo(
            f"{document.id}\t{document.created_at.isoformat()}\t{document.size_bytes}\t{document.original_name}"
        )


@app.command()
def reconcile() -> None:
    """Report orphaned files, rows whose file is gone and size mismatches. Nothing is deleted."""
    report = build_document_service(get_settings()).reconcile()
    for key in report.orphan_blobs:
        typer.echo(f"orphan blob: {key}")
    for document in report.missing_blobs:
        typer.echo(f"missing blob: document {document.id} ({document.original_name}) -> {document.storage_key}")
    for document in report.size_mismatches:
        typer.echo(f"size mismatch: document {document.id} ({document.original_name}) expected {document.size_bytes} bytes")
    if report.consistent:
        typer.echo("Storage and metadata are consistent")
        return
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
