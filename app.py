"""
ResearchStats - research metadata statistics API.

Main FastAPI application entry point.

This module initializes the FastAPI app, sets up middleware, registers routes,
installs error handlers and handles application lifecycle.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.httpsredirect import HTTPSRedirectMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config import get_settings
from database.connection import close_database_connection, initialize_database, get_mongo_client
from routes import auth, stats
from services.stats_service import build_stats_services
from utils.errors import ApiError

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

# Rate limiter instance (shared across the app)
limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Startup: Initialize database connection, start stats cache sweeps
    - Shutdown: Stop sweeps, close database connection
    """
    logger.info("Starting ResearchStats application...")

    db_connected = initialize_database()
    if not db_connected:
        logger.warning("Database connection failed - statistics will be unavailable")

    for service in app.state.stats_services.values():
        await service.start()

    logger.info("ResearchStats application started successfully")

    yield

    logger.info("Shutting down ResearchStats application...")
    for service in app.state.stats_services.values():
        await service.stop()
    close_database_connection()
    logger.info("ResearchStats application shut down")


# Initialize FastAPI app with settings
settings = get_settings()

app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description="Cached statistics over research articles and authors",
    lifespan=lifespan,
)

# One stats service (and cache) per entity set, owned by the app
app.state.stats_services = build_stats_services(settings)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# HTTPS redirect in production (controlled by env var)
if os.getenv("FORCE_HTTPS", "").lower() in ("1", "true", "yes"):
    app.add_middleware(HTTPSRedirectMiddleware)

# Add CORS middleware with configurable origins (default: same-origin only)
_cors_env = os.getenv("CORS_ORIGINS", "")
allowed_origins = [o.strip() for o in _cors_env.split(",") if o.strip()] if _cors_env else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=bool(allowed_origins),
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render taxonomy errors as {"kind", "message"}."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else "Invalid request."
    return JSONResponse(status_code=422, content={"kind": "invalid_request", "message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all for unexpected failures.

    The exception text is only included when EXPOSE_ERROR_DETAILS is set.
    """
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.expose_error_details else "An unexpected error occurred."
    return JSONResponse(status_code=500, content={"kind": "internal_error", "message": message})


# Register API routes
app.include_router(auth.router)
app.include_router(stats.articles_router)
app.include_router(stats.authors_router)


@app.get("/health")
def health_check() -> dict:
    """
    Health check endpoint.

    Checks database connectivity and reports stats cache sizes.

    Returns:
        dict: Health status including database and cache statuses
    """
    client = get_mongo_client()

    db_healthy = False
    if client is not None:
        try:
            client.admin.command("ping")
            db_healthy = True
        except PyMongoError:
            db_healthy = False

    return {
        "status": "healthy" if db_healthy else "degraded",
        "database_connected": db_healthy,
        "stats_cache_entries": {
            name: len(service.cache) for name, service in app.state.stats_services.items()
        },
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()

    uvicorn.run(
        "app:app",
        host=_settings.app_host,
        port=_settings.app_port,
        reload=os.getenv("RELOAD", "false").lower() in ("1", "true", "yes"),
        log_level="info",
    )
