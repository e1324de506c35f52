"""FastAPI application for the ExamCraft question paper service."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from app.config import get_settings
from app.middleware.logging import RequestLoggingMiddleware, configure_logging
from app.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIDMiddleware
from app.routers import catalog, papers
from app.services.paper_store import get_paper_store

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # This can be set via environment variable or build process

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    # Startup: Validate environment configuration
    try:
        settings = get_settings()

        # Log startup (without exposing secrets)
        logger.info("Starting ExamCraft API v%s", VERSION)
        logger.info("Model: %s", settings.model_name)
        logger.info(
            "AI suggestions: %s",
            "enabled" if settings.gemini_api_key else "disabled (GEMINI_API_KEY not set)",
        )
        logger.info("Environment validation: OK")

    except Exception as e:
        logger.error("Startup validation failed: %s", e)
        raise

    yield

    logger.info("Shutting down ExamCraft API")


app = FastAPI(
    title="ExamCraft API",
    description="Exam question paper editor: sections, questions, AI drafts, print and PDF output",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state (required by slowapi)
limiter = get_limiter()
app.state.limiter = limiter

# Register custom rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Add logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to specific domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Content-Disposition",
        "X-Request-ID",
        "X-Total-Marks",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "Retry-After",
    ],
)

# Outermost, so the logging middleware sees the request id
app.add_middleware(RequestIDMiddleware)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint.

    The paper store must be reachable. Gemini is optional: a missing key is
    reported but does not make the service unhealthy.

    Status Codes:
        200: Service healthy
        503: Paper store unavailable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    services: Dict[str, str] = {}
    overall_healthy = True

    try:
        store = get_paper_store()
        services["paper_store"] = f"healthy ({len(store.list_ids())} papers)"
    except Exception as e:
        services["paper_store"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    settings = get_settings()
    services["gemini_api"] = "configured" if settings.gemini_api_key else "not configured"

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "services": services,
    }

    if not overall_healthy:
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json",
        )

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """
    Get version information for the API.

    Returns:
        JSON with version number and commit hash.
    """
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(catalog.router)
app.include_router(papers.router)
