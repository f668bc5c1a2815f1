"""
Exam Autograder - FastAPI Application
Main application entry point with middleware and route configuration
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autograder.ai.answer_evaluator import answer_evaluator
from autograder.api.v1 import api_router
from autograder.core.config import settings
from autograder.core.database import init_db
from autograder.core.exceptions import AutograderError
from autograder.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    configure_logging()
    
    if settings.OTEL_ENABLED:
        try:
            from autograder.ai.telemetry import init_telemetry
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
            
            init_telemetry()
            FastAPIInstrumentor.instrument_app(app)
        except Exception as e:
            logger.warning("Telemetry initialization skipped: %s", e)
    
    await init_db()
    logger.info("Database tables initialized")
    
    if not answer_evaluator.client.configured:
        logger.warning(
            "No API key for LLM provider %s; short answers will use fallback grading",
            settings.LLM_PROVIDER,
        )
    
    yield


async def autograder_error_handler(request: Request, exc: AutograderError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Exam authoring, delivery and automatic grading",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    
    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    app.add_exception_handler(AutograderError, autograder_error_handler)
    
    # Include API routes
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    
    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "llm_provider": settings.LLM_PROVIDER,
            "llm_configured": settings.llm_configured,
        }
    
    return app


app = create_app()
