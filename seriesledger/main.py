"""FastAPI application entry point for SeriesLedger."""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from seriesledger.api import router as api_router
from seriesledger.config import settings
from seriesledger.core.logging import setup_logging
from seriesledger.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    setup_logging()
    logger.info("Starting SeriesLedger...")

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="SeriesLedger API",
    description="Episode tracking and selective torrent downloads",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    try:
        uvicorn.run(app, host=settings.host, port=settings.port, reload=False)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
