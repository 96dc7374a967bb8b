"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.dashboard.router import router as dashboard_router
from app.db.database import init_db
from app.imports import ImportPipelineError
from app.imports.router import pipeline_error_status
from app.imports.router import router as imports_router
from app.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("%s started", get_settings().app_name)
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.include_router(imports_router, prefix="/api/imports", tags=["imports"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])

    @app.exception_handler(ImportPipelineError)
    async def import_error_handler(request: Request, exc: ImportPipelineError):
        logger.warning("Import error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=pipeline_error_status(exc),
            content={"detail": exc.message},
        )

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
