"""
FastAPI application entry point for the Command Center API.

Configures logging and CORS, registers the API routers, and manages the
database pool across the application lifespan. The database is optional:
when it cannot be initialized the API still serves analysis and terminal
queries, without task completion state.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from command_center import __version__
from command_center.core.database import DatabaseNotConfiguredError, init_db, close_db
from command_center.api import api_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool on startup and close it on shutdown."""
    logger.info(f"Command Center API {__version__} starting")
    try:
        await init_db()
        logger.info("Task store ready")
    except DatabaseNotConfiguredError:
        logger.info("DATABASE_URL not set; task completion and digest tracking disabled")
    except Exception as e:
        # Analysis and terminal endpoints work without the database
        logger.error(f"Task store unavailable at startup: {e}")

    yield

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Task store did not close cleanly: {e}")
    logger.info("Command Center API stopped")


app = FastAPI(
    title="Command Center API",
    version=__version__,
    description=(
        "Client health classification, task generation and operational "
        "query terminal for a cold-email outreach agency."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # dashboard dev server
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Liveness endpoint for monitoring and load balancers."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Command Center API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "command_center.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
