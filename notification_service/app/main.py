"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.app.lifespan import lifespan
from notification_service.app.router import setup_routers
from notification_service.core.settings import get_app_settings


def create_app() -> FastAPI:
    """Build the application: exception handlers, CORS, then routers."""
    settings = get_app_settings()

    app = FastAPI(
        title=settings.title,
        description=settings.description,
        version=settings.version,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
        root_path=settings.root_path,
        debug=settings.debug,
        lifespan=lifespan,
    )

    configure_exception_handlers(app)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Authorization", "Content-Type", "Last-Event-ID"],
        )

    setup_routers(app, settings)
    return app


app = create_app()
