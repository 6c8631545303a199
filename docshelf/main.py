from __future__ import annotations

import logging
import sys
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from . import __version__
from .config import Settings, get_settings
from .db.session import build_engine, build_session_factory
from .middleware import RequestLoggingMiddleware
from .middleware.logging import ACCESS_LOGGER_NAME
from .routers import documents, health
from .services.documents import DocumentService
from .services.metadata import MetadataStore, create_schema
from .services.storage import LocalBlobStore

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, handlers=[logging.StreamHandler(sys.stdout)])
    logging.getLogger(ACCESS_LOGGER_NAME).setLevel(logging.INFO)


def init_sentry(settings: Settings) -> None:
    dsn = (settings.sentry_dsn or "").strip()
    if not dsn.lower().startswith(("http://", "https://")):
        return
    sentry_sdk.init(
        dsn=dsn,
        environment=settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=settings.sentry_traces_sample_rate,
        profiles_sample_rate=settings.sentry_profiles_sample_rate,
    )


def build_document_service(settings: Settings) -> DocumentService:
    """Wire the blob store and metadata table into a service."""
    engine = build_engine(settings.database_url)
    create_schema(engine)
    return DocumentService(
        blobs=LocalBlobStore(settings.storage_dir),
        metadata=MetadataStore(build_session_factory(engine)),
        max_upload_bytes=settings.max_upload_bytes,
    )


def create_app(settings: Optional[Settings] = None, service: Optional[DocumentService] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    init_sentry(settings)

    app = FastAPI(title="Docshelf API", version=__version__)
    app.state.settings = settings
    app.state.document_service = service or build_document_service(settings)

    app.add_middleware(RequestLoggingMiddleware)

    if settings.metrics_enabled:
        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            registry=CollectorRegistry(),
        )
        instrumentator.instrument(app).expose(app, include_in_schema=False)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials="*" not in settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Error-Kind", "x-request-id"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(documents.router, tags=["documents"])

    logger.info(
        "Docshelf configured",
        extra={"storage_dir": str(settings.storage_dir), "environment": settings.environment},
    )
    return app
