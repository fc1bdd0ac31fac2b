"""
FastAPI application entry point for the Clinic Metrics API.

This module configures logging and CORS, registers the dashboard routers and
manages the asyncpg pool lifecycle. The metric derivation itself lives in
clinic_metrics.services; routers only read views and call those services.

Run locally:
    uvicorn clinic_metrics.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_metrics import __version__
from clinic_metrics.api import api_router
from clinic_metrics.core.config import get_settings
from clinic_metrics.core.database import init_db, close_db

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Initialize database connection pool
    On shutdown:
        - Close database connection pool

    A database failure at startup is logged and the app keeps serving; the
    pool is created lazily on the first request that needs it.
    """
    logger.info("Clinic Metrics API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Clinic Metrics API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="Clinic Metrics API",
    version=__version__,
    description=(
        "Metric derivation backend for the clinic management dashboards. "
        "Provides finance, operations and commercial KPIs, debt recovery "
        "analytics and materialized view refresh."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    """API name, version and docs location."""
    return {
        "name": "Clinic Metrics API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clinic_metrics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
