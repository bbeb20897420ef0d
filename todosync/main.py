"""todosync - personal todo lists kept in sync with a document store."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from todosync.core.auth import LocalAuthGate
from todosync.core.db_client import close_connection, init_db
from todosync.core.logging import configure_logfire, instrument_fastapi
from todosync.interface.view_router import router as view_router
from todosync.services.sync_controller import SyncController


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    auth = LocalAuthGate()
    controller = SyncController(auth=auth)
    await controller.start()
    app.state.auth = auth
    app.state.controller = controller
    yield
    # Shutdown
    controller.close()
    await close_connection()


app = FastAPI(
    title="todosync",
    description="Personal todo lists kept in sync with a document store",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(view_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
