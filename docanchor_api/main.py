"""DocAnchor API - Main FastAPI application."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text

from docanchor_api.errors import UnauthorizedWriteError
from docanchor_api.handlers import register_exception_handlers
from docanchor_api.ledger.gateway import get_read_gateway, get_signing_gateway
from docanchor_api.middleware.auth import AuthMiddleware
from docanchor_api.middleware.correlation import CorrelationIdFilter, CorrelationIDMiddleware
from docanchor_api.middleware.idempotency import IdempotencyMiddleware, get_redis_client
from docanchor_api.routes import documents, reports
from docanchor_api.settings import get_settings

settings = get_settings()

# Configure logging
_handler = logging.StreamHandler(sys.stdout)
_handler.addFilter(CorrelationIdFilter())
logging.basicConfig(
    level=settings.log_level,
    format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s", '
    '"module": "%(name)s", "correlation_id": "%(correlation_id)s"}',
    handlers=[_handler],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting DocAnchor API...")
    try:
        settings.validate_production_settings()

        if settings.is_development:
            from docanchor_api.db.session import init_db
            init_db()

        get_read_gateway()
        logger.info(f"Ledger provider: {settings.ledger_provider} ({settings.ledger_network})")
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    # A missing signing credential should fail here, not on the first write
    try:
        gateway = get_signing_gateway()
        logger.info(f"Signing ledger session ready for {gateway.signer_address}")
    except (UnauthorizedWriteError, ValueError) as e:
        detail = getattr(e, "detail", None) or str(e)
        if settings.ledger_writes_required and not settings.is_development:
            logger.error(f"Signing ledger session unavailable: {detail}")
            raise
        logger.warning(f"Running verification-only, writes will be rejected: {detail}")

    yield
    logger.info("Shutting down DocAnchor API...")


# Create FastAPI app
app = FastAPI(
    title="DocAnchor API",
    description="Document hash anchoring and verification",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Custom middleware (order matters - last added is first executed)
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(AuthMiddleware)
app.add_middleware(CorrelationIDMiddleware)

# Prometheus metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Register routers
app.include_router(reports.router)
app.include_router(documents.router)

register_exception_handlers(app)


def _migrations_at_head(db) -> bool:
    from alembic.config import Config
    from alembic.runtime.migration import MigrationContext
    from alembic.script import ScriptDirectory

    current_rev = MigrationContext.configure(db.connection()).get_current_revision()
    alembic_ini_path = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
    head_rev = ScriptDirectory.from_config(Config(alembic_ini_path)).get_current_head()
    if current_rev != head_rev:
        logger.warning(f"Migrations not at head: current={current_rev}, head={head_rev}")
    return current_rev == head_rev


@app.get("/health")
async def health_check():
    """Health check endpoint (basic liveness)."""
    return {
        "status": "healthy",
        "service": "docanchor-api",
        "version": "0.1.0",
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint (verifies dependencies)."""
    from docanchor_api.db.session import SessionLocal

    checks = {
        "database": False,
        "migrations": None,  # None if not required
        "redis": None,
        "ledger": False,
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
        if not settings.is_development:
            checks["migrations"] = _migrations_at_head(db)
    except Exception as e:
        logger.error(f"Database check failed: {e}")
    finally:
        db.close()

    if settings.idempotency_enabled:
        try:
            get_redis_client().ping()
            checks["redis"] = True
        except Exception as e:
            logger.error(f"Redis check failed: {e}")
            checks["redis"] = False

    try:
        await run_in_threadpool(get_read_gateway().report_count)
        checks["ledger"] = True
    except Exception as e:
        logger.error(f"Ledger check failed: {e}")

    all_ready = all(value is not False for value in checks.values())

    return JSONResponse(
        content={
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
        },
        status_code=200 if all_ready else 503,
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "DocAnchor API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
