"""FastAPI application setup for the sandbox backend."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..logging_config import get_logger
from .routes import create_communication_router, create_control_router
from .storage import SandboxStorage

logger = get_logger(__name__)


def create_sandbox_app(storage: SandboxStorage | None = None) -> FastAPI:
    """Create and configure the sandbox FastAPI application."""
    storage = storage or SandboxStorage()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage storage lifespan."""
        await storage.init()
        logger.info("Sandbox backend started")
        yield
        await storage.close()
        logger.info("Sandbox backend stopped")

    fastapi_app = FastAPI(
        title="Portal Chat Sandbox API",
        description="Local stand-in for the portal communication endpoints",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:5174"],  # Vite default
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.state.storage = storage
    fastapi_app.include_router(create_communication_router(storage))
    fastapi_app.include_router(create_control_router(storage))

    return fastapi_app
