"""
Magic Cards Funnel API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from magic_cards_server.api.v1 import router as api_v1_router
from magic_cards_server.core.config import Settings, get_settings
from magic_cards_server.core.errors import FunnelError
from magic_cards_server.core.logging import configure_logging
from magic_cards_server.core.metrics import get_metrics
from magic_cards_server.core.middleware import SecurityHeadersMiddleware, funnel_error_handler
from magic_cards_server.core.record_store import RecordStoreClient
from magic_cards_server.core.uploads import AssetUploader
from magic_cards_server.services.gateway import PersistenceGateway

log = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)
    metrics = get_metrics()

    app = FastAPI(
        title="Magic Cards Funnel",
        description="Staged production funnel for personalized card projects.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.gateway = None
    app.state.uploader = None
    app.state.record_store = None
    app.state.editor_boards = {}

    # Middleware (order matters — outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )

    app.add_exception_handler(FunnelError, funnel_error_handler)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: the record store must be configured."""
        if app.state.gateway is None:
            return PlainTextResponse("record store not configured", status_code=503)
        return {"status": "ready", "uploads": app.state.uploader is not None}

    @app.get("/metrics", tags=["System"])
    async def metrics_endpoint():
        return PlainTextResponse(metrics.to_prometheus())

    @app.on_event("startup")
    async def on_startup():
        if settings.record_store_configured:
            client = RecordStoreClient(
                settings.record_store_url,
                settings.record_store_base_id,
                settings.record_store_api_key,
                request_timeout=settings.request_timeout_seconds,
                metrics=metrics,
            )
            await client.open()
            app.state.record_store = client
            app.state.gateway = PersistenceGateway(
                client, settings.projects_table, settings.contacts_table
            )
        else:
            log.warning("server.record_store_not_configured")

        if settings.uploads_configured:
            app.state.uploader = AssetUploader(
                settings.upload_url,
                settings.upload_cloud_name,
                settings.upload_preset,
                timeout=settings.upload_timeout_seconds,
                metrics=metrics,
            )
        log.info(
            "server.starting",
            record_store=settings.record_store_configured,
            uploads=settings.uploads_configured,
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("server.shutting_down")
        if app.state.record_store is not None:
            await app.state.record_store.close()

    return app


app = create_app()
