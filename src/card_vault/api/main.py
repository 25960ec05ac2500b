"""FastAPI application for Card Vault Service.

This module builds the FastAPI application with all routes. Run it with:

    uvicorn card_vault.api.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from card_vault.api.card_routes import router as card_router
from card_vault.api.internal_routes import router as internal_router
from card_vault.api.user_routes import router as user_router
from card_vault.bootstrap import ServiceContainer
from card_vault.config import Settings
from card_vault.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment if None
        container: Pre-built collaborators (tests); built at startup if None

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = container.settings if container else Settings()

    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        format_as_json=settings.format_logs_as_json,
        service_name=settings.service_name,
        environment=settings.environment,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build shared collaborators on startup, release them on shutdown."""
        logger.info("starting_card_vault", environment=settings.environment)

        if app.state.container is None:
            app.state.container = ServiceContainer.build(settings)

        if settings.database_create_schema:
            app.state.container.database.init_schema()
            logger.info("database_schema_ready")

        yield

        logger.info("shutting_down_card_vault")
        app.state.container.close()

    app = FastAPI(
        title="Card Vault Service",
        description="Stores card ownership metadata with card payloads held in a secret vault",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,  # Disable docs in production
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.container = container

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Report malformed bodies as 400, like missing fields."""
        errors = [
            f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request: " + "; ".join(errors)},
        )

    app.include_router(card_router)
    app.include_router(user_router)
    app.include_router(internal_router)

    @app.get("/health")
    def health_check() -> JSONResponse:
        """Health check endpoint.

        Returns:
            200 OK if the database and the vault answer
            503 Service Unavailable otherwise
        """
        container = app.state.container
        checks = {"database": "ok", "vault": "ok"}
        try:
            container.database.ping()
        except Exception as e:
            logger.error("health_check_failed", component="database", error=str(e))
            checks["database"] = "unavailable"

        if not container.vault.health_check():
            checks["vault"] = "unavailable"

        if "unavailable" in checks.values():
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "service": settings.service_name, "checks": checks},
            )

        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "status": "healthy",
                "service": settings.service_name,
                "environment": settings.environment,
                "checks": checks,
            },
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "card_vault.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
