"""
MT5 CRM Backend - Main Application Entry Point
"""
import os
import time
import traceback
from datetime import datetime, timezone
from contextlib import asynccontextmanager

import psutil
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError

from mt5crm.config import settings
from mt5crm.utils.logger import install_request_id, logger
from mt5crm.api.router import api_router
from mt5crm.core.rate_limit import install_rate_limit
from mt5crm.db.database import engine, init_db
from mt5crm.db.redis_client import redis_client
from mt5crm.utils.exceptions import AuthenticationError, CRMException, ValidationError


APP_VERSION = "1.0.0"
STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events handler."""
    # Startup
    logger.info(f"🚀 Starting {settings.APP_NAME} ({settings.APP_ENV})...")

    # Database failure is fatal
    try:
        await init_db()
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise
    logger.info("✅ Database initialized")

    # Redis is optional: without it logout and rate limiting are no-ops
    if settings.REDIS_ENABLED:
        try:
            await redis_client.initialize()
        except Exception as e:
            logger.warning(f"⚠️ Running without Redis: {e}")

    logger.info(f"✅ {settings.APP_NAME} started on port {settings.BACKEND_PORT}")

    yield

    # Shutdown
    logger.info(f"🛑 Shutting down {settings.APP_NAME}...")
    await redis_client.close()
    await engine.dispose()
    logger.info("👋 Goodbye!")


def error_body(exc: CRMException) -> dict:
    body = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    return body


def install_exception_handlers(app: FastAPI) -> None:
    """Map the CRM exception hierarchy and store failures to HTTP responses."""

    @app.exception_handler(CRMException)
    async def crm_exception_handler(request: Request, exc: CRMException):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(ValidationError.from_pydantic(exc)),
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def database_unavailable_handler(request: Request, exc: Exception):
        logger.error(f"Database unavailable on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable", "code": "SERVICE_UNAVAILABLE"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        content = {"detail": "Internal server error", "code": "INTERNAL_ERROR"}
        if not settings.is_production:
            content["message"] = str(exc)
            content["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="CRM backend for MT5 brokerage clients and administrators",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    install_rate_limit(app)
    # Outermost, so throttled responses carry a request id too
    install_request_id(app)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "OK",
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "app": settings.APP_NAME,
            "version": APP_VERSION,
        }

    @app.get("/ready", tags=["Health"])
    async def readiness_check():
        """Readiness check - verifies all dependencies are available."""
        checks = {
            "database": "unknown",
            "redis": "unknown"
        }

        # Check database
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "connected"
        except Exception as e:
            checks["database"] = f"error: {str(e)[:50]}"

        # Check Redis
        try:
            if redis_client.is_connected:
                await redis_client.ping()
                checks["redis"] = "connected"
            else:
                checks["redis"] = "not initialized"
        except Exception as e:
            checks["redis"] = f"error: {str(e)[:50]}"

        database_ok = checks["database"] == "connected"
        redis_ok = checks["redis"] in ("connected", "not initialized")

        return {
            "status": "ready" if database_ok and redis_ok else "degraded",
            "checks": checks
        }

    @app.get("/metrics", tags=["Health"])
    async def metrics():
        """Basic process metrics."""
        process = psutil.Process()
        return {
            "process": {
                "pid": os.getpid(),
                "memory_mb": process.memory_info().rss / 1024 / 1024,
                "cpu_percent": process.cpu_percent(),
            },
            "system": {
                "cpu_percent": psutil.cpu_percent(),
                "memory_percent": psutil.virtual_memory().percent,
            }
        }

    return app


# Create the application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mt5crm.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
