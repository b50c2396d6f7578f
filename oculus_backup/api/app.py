"""FastAPI application for oculus-backup."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import dataclasses
import logging
import redis.asyncio as redis

from oculus_backup._storage import StorageFactory
from oculus_backup.backup import BackupManager
from oculus_backup.config import OculusConfig, validate_config
from .config import settings
from .jobs import JobManager
from .routers import backup, health, jobs

# Configure oculus-backup logger with app-managed pattern
# This ensures INFO logs are visible regardless of uvicorn's logging config
import sys
import os

oculus_logger = logging.getLogger("oculus-backup")
oculus_logger.setLevel(logging.INFO)

# App-managed pattern: attach our own handler and don't propagate
oculus_logger.propagate = False

# Clear any existing handlers to avoid duplicates
oculus_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)

formatter = logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)
oculus_logger.addHandler(console_handler)

# Optional: Allow disabling app-managed logging via env var for production
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    oculus_logger.handlers.clear()
    oculus_logger.propagate = True  # Fall back to server-managed pattern

logger = logging.getLogger(__name__)


def build_config() -> OculusConfig:
    """Environment config with API settings layered on top."""
    config = OculusConfig.from_env()

    storage_overrides = {}
    if settings.storage_backend:
        storage_overrides["backend"] = settings.storage_backend
    if settings.working_dir:
        storage_overrides["working_dir"] = settings.working_dir
    if settings.redis_url:
        storage_overrides["redis_url"] = settings.redis_url
        storage_overrides["redis_password"] = settings.redis_password

    backup_overrides = {}
    if settings.backup_dir:
        backup_overrides["backup_dir"] = settings.backup_dir
    if settings.backup_share_dir:
        backup_overrides["share_dir"] = settings.backup_share_dir

    return dataclasses.replace(
        config,
        storage=dataclasses.replace(config.storage, **storage_overrides),
        backup=dataclasses.replace(config.backup, **backup_overrides),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage storage, backup manager and job tracking lifecycle."""
    logger.info("Initializing oculus-backup...")

    config = build_config()
    for warning in validate_config(config):
        logger.warning(warning)

    try:
        app.state.storage = StorageFactory.create_document_storage(
            config.storage.backend, config.to_dict()
        )
        app.state.backup_manager = BackupManager(app.state.storage, config.backup)
        logger.info(f"Backup engine initialized with {config.storage.backend} storage")
    except Exception as e:
        logger.error(f"Failed to initialize backup engine: {e}")
        raise

    # Initialize Redis client for job tracking if Redis URL is configured
    app.state.redis_client = None
    if settings.redis_url:
        try:
            app.state.redis_client = redis.from_url(
                settings.redis_url,
                password=settings.redis_password,
                encoding="utf-8",
                decode_responses=True
            )
            await app.state.redis_client.ping()
            logger.info("Redis client initialized for job tracking")
        except Exception as e:
            logger.warning(f"Failed to initialize Redis client: {e}")
            app.state.redis_client = None
    else:
        logger.info("Redis not configured - jobs tracked in-process")
    app.state.job_manager = JobManager(app.state.redis_client)

    yield

    # Cleanup
    logger.info("Shutting down oculus-backup...")
    await app.state.storage.close()
    if app.state.redis_client:
        await app.state.redis_client.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs.router, prefix=settings.api_prefix)
    app.include_router(backup.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
