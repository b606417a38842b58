"""
Sapien API - Main Application Entry Point.

This module builds and configures the FastAPI application for the Sapien
prompt library. It sets up logging, the database, middleware, static uploads
and routes.

The application backs the Sapien web client: creators publish AI prompts,
browse and search the library, like and use prompts, and discuss them in
comments.

Key Responsibilities:
- Build the application through `create_app`, optionally from explicit
  `Settings` (tests pass their own database and upload directory).
- Set up middleware for correlation, error handling, performance and request
  validation, plus CORS for the browser client.
- Open the database on startup, create the tables and dispose of the engine
  on shutdown.
- Serve uploaded cover images under `/uploads` and mount the API routers
  under `/api`.

Architecture:
The application follows a standard FastAPI structure with a clear separation
between routers (`api/`), domain services (`services/`) and shared
infrastructure (`core/`). Per-request state flows through FastAPI
dependencies; the `Database` lives on `app.state`.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.auth_endpoints import router as auth_router
from api.comments import router as comments_router
from api.health_router import health_router
from api.prompts import router as prompts_router
from api.users import router as users_router
from core.config import Settings, get_settings
from core.database import Database
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    RequestValidationMiddleware,
    register_exception_handlers,
)

API_PREFIX = "/api"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.environment, settings.log_level)
        logger = get_logger("api.startup")

        db = Database(settings.database_url)
        await db.create_all()
        app.state.db = db
        logger.info(
            "Database initialized successfully",
            extra={"environment": settings.environment},
        )

        yield

        # Cleanup on shutdown
        logger.info("Shutting down Sapien API")
        await db.dispose()
        logger.info("Cleanup completed")

    app = FastAPI(
        title="Sapien API",
        description="Library of AI prompts with users and comments",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Added innermost first: correlation ends up outermost
    app.add_middleware(RequestValidationMiddleware)
    app.add_middleware(
        ErrorHandlingMiddleware, expose_details=not settings.is_production
    )
    app.add_middleware(PerformanceMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "X-Process-Time"],
    )

    register_exception_handlers(app)

    os.makedirs(settings.cover_image_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(prompts_router, prefix=API_PREFIX)
    app.include_router(comments_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )
