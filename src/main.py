"""tarefas - personal task management API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.error_handlers import register_error_handlers
from src.interface.task_router import router as task_router
from src.interface.user_router import router as user_router


logger = logging.getLogger(__name__)


def validate_startup_configuration() -> None:
    """Fail fast when production runs without a signing secret.

    Raises:
        ValueError: If SECRET_KEY is missing in production
    """
    settings.get_secret_key()
    logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()
    validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    yield
    # Shutdown
    await close_connection()


app = FastAPI(
    title="tarefas",
    description="Personal task management API",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)

# Register routers
app.include_router(user_router)
app.include_router(task_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run("src.main:app", host=settings.host, port=settings.port)
