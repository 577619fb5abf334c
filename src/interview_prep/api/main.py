# FastAPI Application
"""
Main FastAPI application for the Interview Prep API.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from interview_prep import __version__
from interview_prep.config import API_CONFIG, DATABASE_CONFIG, LOGGING_CONFIG
from interview_prep.db.database import Database
from interview_prep.db.repository import SessionRepository
from interview_prep.db.schema_auditor import SchemaAuditor
from interview_prep.errors import (
    InterviewPrepError,
    InvalidStateTransition,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from interview_prep.services.gateway import AIProviderGateway
from interview_prep.services.question_generator import QuestionGenerator
from interview_prep.services.response_evaluator import ResponseEvaluator
from interview_prep.services.session_orchestrator import SessionOrchestrator

from .models import HealthResponse
from .routes import router

# Configure logging
logging.basicConfig(
    level=LOGGING_CONFIG["log_level"],
    format=LOGGING_CONFIG["format"],
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateTransition, 409),
    (PersistenceError, 503),
)


def create_app(
    database_url: Optional[str] = None,
    gateway: Optional[AIProviderGateway] = None,
    audit_schema: Optional[bool] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database_url: SQLAlchemy async URL (defaults to configuration)
        gateway: Provider gateway to use (defaults to the crewai-backed one)
        audit_schema: Run the schema auditor at startup (defaults to configuration)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("🚀 Interview Prep API starting up...")
        database = Database(database_url)

        run_audit = DATABASE_CONFIG["audit_schema_on_startup"] if audit_schema is None else audit_schema
        if run_audit:
            await SchemaAuditor(database.engine).run()

        provider = gateway or AIProviderGateway()
        app.state.orchestrator = SessionOrchestrator(
            SessionRepository(database.session_factory),
            QuestionGenerator(provider),
            ResponseEvaluator(provider),
        )
        yield
        await database.dispose()
        logger.info("👋 Interview Prep API shutting down...")

    app = FastAPI(
        title="Interview Prep API",
        description="""
    AI-powered interview preparation with STAR-method feedback.

    ## Workflow

    1. **POST /api/v1/prepare/sessions** - Start a new practice session
    2. **POST /api/v1/prepare/sessions/{id}/question** - Get the next question
    3. **POST /api/v1/prepare/sessions/{id}/respond** - Submit your answer and get STAR scores
    4. Repeat steps 2-3 until the session completes
    5. **GET /api/v1/prepare/sessions/{id}/review** - Review answers and session analytics
    """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=API_CONFIG["cors_origins"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # ========================================================================
    # Root Endpoints
    # ========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Interview Prep API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["system"],
        summary="Health check",
        description="Check if the API is running and healthy."
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now()
        )

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(InterviewPrepError)
    async def core_error_handler(request: Request, exc: InterviewPrepError):
        """Map core errors to HTTP status codes with their reason code."""
        status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
        if status_code >= 500:
            logger.error(f"❌ {exc.code}: {exc.message}")
        return JSONResponse(
            status_code=status_code,
            content={
                "error": exc.code,
                "detail": exc.message
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "InternalServerError",
                "detail": "An unexpected error occurred. Please try again later."
            }
        )

    return app


app = create_app()


# ============================================================================
# Entry point for running directly
# ============================================================================

def run_server(host: str = API_CONFIG["host"], port: int = API_CONFIG["port"], reload: bool = False):
    """Run the FastAPI server."""
    import uvicorn
    uvicorn.run(
        "interview_prep.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    run_server(reload=True)
