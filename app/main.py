"""
Skooly FastAPI Application Entry Point.

Run with: uvicorn app.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import (
    ai_materials,
    chat,
    community,
    generate,
    handwritten_notes,
    materials,
    my_materials,
    search,
    videos,
)
from app.config import get_settings, sanitize_error
from app.db.session import Database
from app.logging_config import setup_logging

settings = get_settings()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    database = Database.from_settings(settings)
    database.connect()
    app.state.database = database
    logger.info("%s API starting (environment=%s)", settings.app_name, settings.environment)
    yield
    # Shutdown
    await database.close()
    logger.info("%s API stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Student learning platform API: course materials, AI study tools and community",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR ENVELOPE
# =============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render `detail` as `{"error": detail}`; dict details are sent as-is."""
    content = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": sanitize_error(exc)},
    )


# Include routers
app.include_router(materials.router)
app.include_router(my_materials.router)
app.include_router(handwritten_notes.router)
app.include_router(ai_materials.router)
app.include_router(videos.router)
app.include_router(community.router)
app.include_router(chat.router)
app.include_router(search.router)
app.include_router(generate.router)


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint; reports database reachability."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await request.app.state.database.ping()
    except Exception as e:
        logger.error("Health check failed: %s", str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "error",
                "database": "disconnected",
                "error": sanitize_error(e, generic_message="Database unavailable"),
                "timestamp": timestamp,
            },
        )
    return JSONResponse(content={"status": "ok", "database": "connected", "timestamp": timestamp})
