from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.database import Database
from app.core.logging import logger
from app.routers import documents_router, health_router, process_router, subscription_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI application."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    await Database.connect_db()
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await Database.close_db()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    application = FastAPI(
        title=settings.APP_NAME,
        description="Medical document upload and AI analysis service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Configure CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    application.include_router(health_router)
    application.include_router(process_router)
    application.include_router(documents_router, prefix=settings.API_V1_PREFIX)
    application.include_router(subscription_router, prefix=settings.API_V1_PREFIX)

    # Local storage serves uploaded files itself
    if settings.STORAGE_BACKEND.lower() == "local":
        upload_dir = Path(settings.UPLOAD_DIR)
        upload_dir.mkdir(parents=True, exist_ok=True)
        application.mount("/files", StaticFiles(directory=str(upload_dir)), name="files")

    @application.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/health",
        }

    return application


app = create_app()
