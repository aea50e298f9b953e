"""
Impact Tracker - Main Application Entry Point

Donor credit attribution and evidence coverage service.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from impact_tracker.core.config import get_settings
from impact_tracker.core.exceptions import (
    AllocationExceededError,
    AuthenticationError,
    ConcurrencyConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from impact_tracker.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    logger.info(f"Starting Impact Tracker in {settings.ENVIRONMENT} mode...")

    # Initialize database if needed
    if settings.ENVIRONMENT == "local":
        from impact_tracker.infrastructure.local.database import init_db

        await init_db()

    yield

    # Shutdown
    logger.info("Shutting down Impact Tracker...")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP responses."""
    settings = get_settings()

    @app.exception_handler(AllocationExceededError)
    async def allocation_exceeded_handler(request: Request, exc: AllocationExceededError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.message, "available": exc.available, "ceiling": exc.ceiling},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in errors
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": exc.message})

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": exc.message})

    @app.exception_handler(ConcurrencyConflictError)
    async def concurrency_conflict_handler(request: Request, exc: ConcurrencyConflictError):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": exc.message})

    @app.exception_handler(InfrastructureError)
    async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        message = "Internal server error"
        if settings.EXPOSE_STORE_ERRORS:
            message = f"{exc.message}: {exc.details}" if exc.details else exc.message
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Impact Tracker",
        description="Donor credit attribution against measured KPI impact",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    from impact_tracker.api import donor_credits, donors, kpis

    app.include_router(donor_credits.router, prefix="/api", tags=["donor_credits"])
    app.include_router(donors.router, prefix="/api", tags=["donors"])
    app.include_router(kpis.router, prefix="/api", tags=["kpis"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "version": "0.1.0"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
