"""FastAPI application for the overlay mailer."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mailer.core.config import settings
from mailer.core.duckdb import close_duckdb_connection, get_duckdb_connection
from mailer.api.router import api_router, get_tags_metadata
from mailer.middleware.error_handler import add_error_handlers
from mailer.utils.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

DESCRIPTION = """
Reusable email templates with per-user customization.

* A **shared base dataset** of templates stored as Parquet
* A **per-user overlay** holding personal templates, hidden ids and colours
* **Gmail delivery** with `{{placeholder}}` substitution

Authenticate with `Authorization: Bearer <session token>` or the session
cookie. The token carries the user's email and Gmail access token.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the DuckDB connection up front and log where templates live."""
    get_duckdb_connection()
    logger.info(
        f"{settings.PROJECT_NAME} {settings.VERSION} starting "
        f"({'debug' if settings.DEBUG else 'production'} mode)"
    )
    logger.info(
        f"Templates: {settings.STORAGE_PROVIDER}://{settings.TEMPLATES_BUCKET}/{settings.TEMPLATES_KEY} "
        f"read as {settings.BASE_DATASET_SOURCE}, overlays under {settings.TEMPLATES_OVERLAY_KEY}"
    )

    yield

    close_duckdb_connection()
    logger.info(f"{settings.PROJECT_NAME} stopped")


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""
    docs_enabled = settings.DEBUG
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=DESCRIPTION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_tags=get_tags_metadata(),
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS_LIST,
        allow_credentials=True,
        allow_methods=settings.CORS_METHODS_LIST,
        allow_headers=settings.CORS_HEADERS_LIST,
    )

    add_error_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["System"])
    async def root():
        """Service name and the mounted API routes."""
        return {
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "endpoints": {
                "templates": f"{settings.API_PREFIX}/templates",
                "send_email": f"{settings.API_PREFIX}/send-email",
            },
            "documentation": "/docs" if docs_enabled else None,
        }

    @app.get("/health", tags=["System"])
    async def health_check():
        """Liveness probe."""
        return {
            "status": "healthy",
            "service": settings.SERVICE_NAME,
            "storage": settings.STORAGE_PROVIDER,
            "dataset_source": settings.BASE_DATASET_SOURCE,
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
