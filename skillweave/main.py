"""
SkillWeave API - Main FastAPI Application
=========================================

Backend for the SkillWeave portfolio builder: accounts, portfolios,
templates, visit analytics and the manual design canvas, persisted in
Supabase Postgres.

Features:
- Direct email/password signup and signin with JWT-backed sessions
- Portfolio CRUD, publishing lifecycle, public gallery and search
- Template catalog with ratings, usage tracking and Redis caching
- "Profile Details" about-me records
- Design canvas state with editor actions and keyboard shortcuts
- Health check covering the database and the Supabase REST gateway

Version: 1.0.0
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillweave.config import settings
from skillweave.core.cache import close_cache, health_check as cache_health_check, init_cache
from skillweave.core.database import close_db, get_db, init_db, ping
from skillweave.core.errors import DatabaseError
from skillweave.core.logging import configure_logging, get_logger
from skillweave.routes import auth, auth_direct, portfolios, profile, templates, users
from skillweave.services.supabase_probe import probe_supabase

# Configure centralized logging
configure_logging(log_level=settings.LOG_LEVEL, log_file=settings.LOG_FILE, enable_file=settings.LOG_TO_FILE)
logger = get_logger(__name__)

# Application startup time for uptime calculation
startup_time = datetime.now(timezone.utc)

GZIP_MINIMUM_SIZE = 1000


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.

    Startup creates missing tables and connects the template cache;
    shutdown closes both connection pools.
    """
    logger.info("🚀 Starting SkillWeave API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    try:
        await init_db()
        logger.info("✅ Database connection established")

        await init_cache()
        if await cache_health_check():
            logger.info("✅ Cache health check passed")

        logger.info("📋 Configuration Summary:")
        logger.info(f"   - Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")
        logger.info(f"   - Supabase REST: {settings.SUPABASE_URL or 'not configured'}")
        logger.info(f"   - Template cache: {'enabled' if settings.CACHE_ENABLED else 'disabled'}")
        logger.info(f"   - CORS Origins: {len(settings.CORS_ORIGINS)} configured")
        logger.info(f"   - Log Level: {settings.LOG_LEVEL}")
        logger.info("🎉 SkillWeave API is ready!")
    except Exception as e:
        logger.error(f"❌ Failed to initialize application: {e}")
        raise

    yield

    logger.info("🛑 Shutting down SkillWeave API...")
    await close_db()
    await close_cache()
    logger.info("✅ Cleanup completed successfully")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## SkillWeave portfolio builder API

    * **Auth** - direct signup/signin, JWT sessions, logout
    * **Portfolios** - drafts, publishing, public gallery, search, analytics
    * **Design canvas** - element list, drag/resize/rotate, keyboard shortcuts
    * **Templates** - catalog, featured/popular lists, ratings, usage
    * **Profile** - about-me details shown on portfolios

    Send the access token from `/api/auth-direct/signin` as
    `Authorization: Bearer <token>`.
    """,
    version=settings.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware for the front end origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Compress larger JSON payloads (template catalog, portfolio content)
app.add_middleware(GZipMiddleware, minimum_size=GZIP_MINIMUM_SIZE)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Validation failed",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(DatabaseError)
async def database_exception_handler(request: Request, exc: DatabaseError):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": str(exc)},
    )


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


@app.get("/api/health", tags=["System"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check covering the database and the Supabase REST gateway.

    Returns:
        dict: Component status, environment and uptime
    """
    database_ok = await ping(db)
    supabase = await probe_supabase()
    cache = await cache_health_check()
    uptime = (datetime.now(timezone.utc) - startup_time).total_seconds()

    return {
        "success": True,
        "status": "healthy" if database_ok else "degraded",
        "message": f"{settings.APP_NAME} is running",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "uptime_seconds": round(uptime, 1),
        "services": {
            "database": "connected" if database_ok else "unavailable",
            "supabase": supabase,
            "cache": "disabled" if cache is None else ("connected" if cache else "unavailable"),
        },
    }


@app.get("/", tags=["System"])
async def root():
    """API overview and navigation."""
    return {
        "success": True,
        "message": "Welcome to SkillWeave API",
        "version": settings.VERSION,
        "api_url": settings.VITE_API_URL,
        "documentation": "/docs",
        "health_check": "/api/health",
        "endpoints": {
            "auth_direct": "/api/auth-direct",
            "auth": "/api/auth",
            "users": "/api/users",
            "profile": "/api/profile",
            "portfolios": "/api/portfolios",
            "templates": "/api/templates",
        },
    }


app.include_router(auth_direct.router, prefix="/api/auth-direct", tags=["Direct Auth"])
app.include_router(auth.router, prefix="/api/auth", tags=["Sessions"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(profile.router, prefix="/api/profile", tags=["Profile"])
app.include_router(portfolios.router, prefix="/api/portfolios", tags=["Portfolios"])
app.include_router(templates.router, prefix="/api/templates", tags=["Templates"])


if __name__ == "__main__":
    """
    Run the application directly with uvicorn.

    Usage:
        python -m skillweave.main
        or
        uvicorn skillweave.main:app --reload --host 0.0.0.0 --port 8000
    """
    uvicorn.run(
        "skillweave.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info",
    )
