"""
FastAPI application entry point for the Tier Engine API.

Configures logging and CORS, opens the database pool for the application's
lifetime, registers the API routers and starts the ASGI server when run
directly.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tier_engine import __version__
from tier_engine.api import api_router
from tier_engine.core.database import init_db, close_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
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
    """
    logger.info("Tier Engine API starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        # /health and / keep answering without a database
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Tier Engine API shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="Tier Engine API",
    version=__version__,
    description=(
        "Customer tier transition analytics (movement matrix, growth insights, "
        "alerts) and concurrency-safe SNR-account assignment."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js dev server
        "http://127.0.0.1:3000",
    ],
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
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name and version
    """
    return {
        "name": "Tier Engine API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tier_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
