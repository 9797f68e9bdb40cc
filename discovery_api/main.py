"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from discovery_api.core.config import settings
from discovery_api.core.database import engine, Base, SessionLocal
from discovery_api.core.exceptions import DiscoveryError
from discovery_api.core.logging_config import setup_logging
from discovery_api.api.v2.router import api_router
from discovery_api.middleware.request_logging import RequestLoggingMiddleware

# Register all models with Base.metadata
import discovery_api.models  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def run_migrations() -> None:
    """Apply Alembic migrations when an external database is configured."""
    if not os.getenv("DATABASE_URL"):
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")
        return

    from alembic import command
    from alembic.config import Config

    try:
        logger.info("[MIGRATION] Running Alembic migrations...")
        command.upgrade(Config("alembic.ini"), "head")
        logger.info("[MIGRATION] Alembic migrations completed")
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.warning(f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}")
        logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, check connectivity and seed default taxonomies."""
    logger.info(f"Starting up {settings.APP_NAME} API...")
    run_migrations()

    try:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            from discovery_api.services.taxonomy_seeder import ensure_default_taxonomies
            ensure_default_taxonomies(db)
        finally:
            db.close()
        logger.info("Database ready")
    except SQLAlchemyError as e:
        logger.error(f"Database initialisation failed: {e}", exc_info=True)
        logger.warning("Check DATABASE_URL and database connectivity; /api/v2/health will report the issue")

    yield
    logger.info(f"Shutting down {settings.APP_NAME} API...")


app = FastAPI(
    title="Host Discovery API",
    description="Discovered host inventory, discovery rules and auto-provisioning",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v2")


@app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError):
    """Render domain errors as {"error": {"message": ...}}."""
    trace_id = getattr(request.state, "trace_id", None)
    logger.warning(f"[{trace_id}] {type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"message": exc.message}},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))
    logger.error(f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}", exc_info=True)

    if isinstance(exc, SQLAlchemyError):
        message = "Database error: check DATABASE_URL / migrations"
    else:
        message = str(exc) if settings.DEBUG else "Internal Server Error"

    return JSONResponse(
        status_code=500,
        content={
            "error": {"message": message, "type": type(exc).__name__},
            "trace_id": trace_id,
        },
    )


@app.get("/")
async def root():
    return {
        "message": "Host Discovery API",
        "version": VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def liveness():
    """Liveness probe; does not touch the database. Use /api/v2/health for readiness."""
    return {"status": "ok"}
