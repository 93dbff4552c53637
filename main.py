# ============================================================================
# MODULE SET ORCHESTRATOR - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - MODULE SET ORCHESTRATION
# STATUS: Core - FastAPI application entry point
# PURPOSE: Main application with background build refresh
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Module Set Orchestrator Main Application

FastAPI application that:
1. Provides HTTP API for module set operations
2. Refreshes running build attempts in the background
3. Manages storage and the execution engine

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE, EPOCH
from api.routes import router, set_services
from core.config import Defaults, StorageBackend, get_defaults
from core.logging import configure_logging, get_logger
from infrastructure import LockService, PostgresLockService, ThreadPoolExecutionEngine
from repositories import FileModuleStore, PostgresBuildNumberRepository
from repositories.database import close_pool, init_pool
from services import ModuleSetService

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)

# Global instances
_service: Optional[ModuleSetService] = None


def build_service(defaults: Defaults) -> ModuleSetService:
    """Wire storage, locking and the execution engine into a service."""
    persistence = defaults.persistence
    orchestrator = defaults.orchestrator

    store = FileModuleStore(persistence.root_dir)
    counter_repo = None
    lock_service = LockService()

    if persistence.backend == StorageBackend.POSTGRES:
        pool = init_pool()
        counter_repo = PostgresBuildNumberRepository(pool)
        if persistence.create_schema:
            counter_repo.ensure_schema()
        lock_service = PostgresLockService(pool)
        logger.info("Build counters stored in PostgreSQL")

    engine = ThreadPoolExecutionEngine(
        orchestrator.build_command,
        max_workers=orchestrator.max_parallel_builds,
        workspace=orchestrator.workspace_dir,
        unstable_exit_code=orchestrator.unstable_exit_code,
    )

    return ModuleSetService(
        store,
        engine,
        persistence.module_set_name,
        counter_repo=counter_repo,
        lock_service=lock_service,
        workspace=orchestrator.workspace_dir,
        default_descriptor_pattern=defaults.descriptors.include_pattern,
        poll_interval=orchestrator.poll_interval_seconds,
    )


async def refresh_loop(service: ModuleSetService, interval: float) -> None:
    """Poll running attempts so statuses stay current without API calls."""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(service.refresh_all)
        except Exception as e:
            # Keep polling; one bad refresh must not end the loop
            logger.exception(f"Background refresh failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    global _service

    logger.info(f"Starting Module Set Orchestrator v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    defaults = get_defaults()
    _service = build_service(defaults)

    report = _service.sync_modules()
    logger.info(f"Initial module sync: {report}")

    set_services(_service)

    refresher = asyncio.create_task(
        refresh_loop(_service, defaults.orchestrator.poll_interval_seconds)
    )
    logger.info("Background refresh started")

    yield

    # Shutdown
    logger.info("Shutting down Module Set Orchestrator...")
    refresher.cancel()
    _service.shutdown(wait=False)
    if defaults.persistence.backend == StorageBackend.POSTGRES:
        close_pool()

    logger.info("Module Set Orchestrator stopped")


# Create FastAPI app
app = FastAPI(
    title="Module Set Orchestrator",
    description=f"Epoch {EPOCH} module set build orchestration",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Module Set Orchestrator",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
