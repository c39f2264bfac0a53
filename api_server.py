"""
FastAPI Server for the Football Highlights API
Serves catalog, search, interaction and subscription endpoints
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from config.config import ALLOWED_ORIGINS, API_RATE_LIMIT, ENVIRONMENT, validate_config
from config.logging import setup_logging
from config.sentry import init_sentry
from src.api.responses import register_exception_handlers
from src.api.router import router as api_router
from src.database.engine import Database

# Setup logging at module level (must run before app creation)
# This ensures logging works when uvicorn imports the module
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events

    Owns the Database handle unless one was attached before startup.
    """
    logger.info("Starting Football Highlights API...")

    validate_config()
    init_sentry()

    owns_db = getattr(app.state, "db", None) is None
    if owns_db:
        app.state.db = Database.from_config()

    # NOTE: production schema is managed outside the app
    if ENVIRONMENT != "production":
        await app.state.db.create_all()

    yield

    logger.info("Shutting down Football Highlights API...")
    if owns_db:
        await app.state.db.dispose()
        logger.info("Database connections closed")


def create_app(db: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application

    Args:
        db: Pre-built Database (tests); created in lifespan when omitted
    """
    app = FastAPI(
        title="Football Highlights API",
        description="Highlights catalog, search, engagement and carrier subscription gate",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.db = db

    # Rate limiter: per client IP, applied to every endpoint
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[API_RATE_LIMIT],
        storage_uri="memory://",
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # All API endpoints live under /api
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "service": "Football Highlights API",
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health(request: Request):
        """
        Health check endpoint

        Reports 503 when the database is unreachable.
        """
        db: Optional[Database] = request.app.state.db
        database_ok = db is not None and await db.check_connection()
        return JSONResponse(
            status_code=200 if database_ok else 503,
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "database": "ok" if database_ok else "unavailable",
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Validate configuration
    try:
        validate_config()
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise SystemExit(1)

    logger.info("Configuration validated successfully")

    uvicorn.run(
        "api_server:app",
        host="127.0.0.1",
        port=8000,
        reload=ENVIRONMENT == "development",
        log_level="info",
    )
