"""
FastAPI application factory for the budget assistant backend.

The budgeting subsystem (computed cells, categories, query execution) is
supplied by the host application:

    app = create_app(data_source=my_budget, query_engine=my_query_engine)
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .agent.session_manager import AssistantSessionManager
from .agent.tools.budget_tools import build_default_registry
from .api.assistant import router as assistant_router
from .api.dependencies.rate_limit import limiter
from .core.config import Settings, get_settings
from .core.exceptions import AppError
from .services.budget_data import BudgetDataSource, QueryEngine

# Set the root logger level to INFO so we can see detailed logs
logging.basicConfig(level=logging.INFO)

logger = structlog.get_logger()


def create_app(
    data_source: BudgetDataSource,
    query_engine: QueryEngine,
    settings: Settings | None = None,
    assistant: AssistantSessionManager | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        data_source: Budgeting subsystem backing get_budget_month
        query_engine: Query executor backing run_query
        settings: Application settings (defaults to cached settings)
        assistant: Pre-built session manager (tests); built from the
            budget tools when omitted
    """
    settings = settings or get_settings()

    if assistant is None:
        registry = build_default_registry(data_source, query_engine)
        assistant = AssistantSessionManager(registry, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan: release the backend client on shutdown."""
        logger.info(
            "Starting Budget Assistant Backend",
            environment=settings.environment,
            assistant_configured=settings.assistant_configured,
        )
        try:
            yield
        finally:
            await app.state.assistant.aclose()
            logger.info("Budget Assistant Backend stopped")

    app = FastAPI(
        title="Budget Assistant API",
        description="Conversational assistant grounded in live budget data",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.assistant = assistant
    app.state.limiter = limiter

    # CORS middleware for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Render rate limit rejections in the chat error shape."""
        return JSONResponse(
            status_code=429,
            content={"error": f"Rate limit exceeded: {exc.detail}"},
            headers={"Retry-After": str(60)},
        )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Map application errors to their HTTP status."""
        logger.error(
            "Request failed",
            path=request.url.path,
            **exc.to_dict(),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "error_type": exc.error_type},
        )

    app.include_router(assistant_router)

    return app
