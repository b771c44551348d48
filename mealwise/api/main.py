"""
FastAPI application for mealwise.

Exposes household profiles, meal plan generation, meal edits and grocery
lists over HTTP. Pipeline errors are mapped to status codes in one place
so routes only deal with the happy path.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import Settings, configure_logging
from ..data.database import SQLitePlanRepository
from ..generation.errors import (
    AuthenticationFailedError,
    FatalServiceError,
    GenerationCancelled,
    GenerationFailed,
    MealwiseError,
    NotFoundError,
    TransientServiceError,
    UnparseableReply,
)
from ..planning.service import MealPlanService, build_service
from .routes import households, plans, shop

logger = logging.getLogger(__name__)


def status_for(error: MealwiseError) -> int:
    """HTTP status for a pipeline or lookup error."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, AuthenticationFailedError):
        return 502
    if isinstance(error, FatalServiceError):
        return 503
    if isinstance(error, (GenerationFailed, UnparseableReply, TransientServiceError)):
        return 502
    if isinstance(error, GenerationCancelled):
        return 503
    return 500


def create_app(settings: Optional[Settings] = None, service: Optional[MealPlanService] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Runtime settings (read from the environment if omitted)
        service: Prebuilt service; when omitted one is wired at startup
            from settings with a SQLite repository
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting mealwise API...")
        if getattr(app.state, "service", None) is None:
            repository = SQLitePlanRepository(db_dir=settings.db_dir)
            app.state.service = build_service(settings, repository)
            logger.info(f"Service initialized (db_dir={settings.db_dir})")
        yield
        logger.info("mealwise API shutdown complete")

    app = FastAPI(
        title="mealwise API",
        description="Household meal planning with validated AI-generated recipes",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MealwiseError)
    async def mealwise_error_handler(request: Request, exc: MealwiseError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} failed: {exc!r}")
        else:
            logger.info(f"[API] {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": exc.user_message},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.info(f"[API] Rejected {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.get("/health")
    async def health_check():
        """Health check endpoint for load balancers."""
        return {"status": "healthy"}

    app.include_router(households.router, prefix="/api", tags=["households"])
    app.include_router(plans.router, prefix="/api", tags=["planning"])
    app.include_router(shop.router, prefix="/api", tags=["shopping"])
    return app


def run(settings: Optional[Settings] = None) -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    if settings is None:
        settings = Settings.from_env()
        configure_logging(settings)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
