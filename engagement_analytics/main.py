"""
FastAPI application entry point for the Engagement Analytics API.

Configures logging and CORS, manages the asyncpg pool across the application
lifespan, and registers the analysis routers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from engagement_analytics.core.database import init_db, close_db
from engagement_analytics.api import api_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_TITLE = "Engagement Analytics API"
API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the database pool on startup and close it on shutdown.

    A failed pool initialization is logged and startup continues; /health
    and / do not need the database.
    """
    logger.info(f"{API_TITLE} starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info(f"{API_TITLE} shutting down")
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description=(
        "Behavioral driver analysis, exposure-combination pattern mining and "
        "persona summary statistics over the main_analysis feature table."
    ),
    lifespan=lifespan,
)

# Local dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "engagement_analytics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
