from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from moviemonday.config import Settings
from moviemonday.database import Base, build_engine, build_session_factory
from moviemonday.middleware.security import SecurityHeadersMiddleware
from moviemonday.routes import auth, groups, movie_monday, watchlists, comments, statistics
from moviemonday.services.statistics_service import StatisticsService
from moviemonday.utils.cache import get_cache_stats
from moviemonday.utils.rate_limiter import RateLimiter
import moviemonday.models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events

    Startup:
    - Create tables when AUTO_CREATE_TABLES is set
    - Make sure every statistics counter row exists

    Shutdown:
    - Dispose of the connection pool
    """
    settings: Settings = app.state.settings

    # Startup
    logger.info("=" * 60)
    logger.info("🎬 Movie Monday API Starting...")
    logger.info(f"   Environment: {settings.ENVIRONMENT}")
    logger.info(f"   CORS Origins: {len(settings.allowed_origins)} configured")
    logger.info("=" * 60)

    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=app.state.engine)

    db = app.state.session_factory()
    try:
        StatisticsService.ensure_keys(db)
    except Exception as e:
        logger.error(f"Failed to initialise statistics counters: {str(e)}")
    finally:
        db.close()

    yield

    # Shutdown
    logger.info("=" * 60)
    logger.info("🛑 Movie Monday API Shutting Down...")
    app.state.engine.dispose()
    logger.info("   Database connections closed")
    logger.info("=" * 60)


def _cors_headers(request: Request, settings: Settings) -> dict:
    """CORS headers for error responses raised before CORSMiddleware can add them"""
    origin = request.headers.get("origin")
    if origin not in settings.allowed_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "*",
        "Access-Control-Expose-Headers": "*",
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one Settings object"""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title="Movie Monday API",
        description="Weekly group movie nights: candidates, winners, watchlists and comments",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.rate_limiter = RateLimiter()

    # ============================================
    # Security Configuration
    # ============================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.ENVIRONMENT == "production")

    # Trusted Hosts - Production only
    if settings.ENVIRONMENT == "production" and settings.TRUSTED_HOSTS:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.TRUSTED_HOSTS)

    # ============================================
    # Exception Handlers
    # ============================================

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Every HTTP error (404 for unknown routes included) gets CORS headers"""
        headers = dict(exc.headers or {})
        headers.update(_cors_headers(request, settings))
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
            headers=_cors_headers(request, settings),
        )

    # ============================================
    # Routes
    # ============================================

    @app.get("/", tags=["Health"])
    async def root():
        """Basic health check"""
        return {
            "message": "Movie Monday API",
            "version": API_VERSION,
            "status": "healthy",
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Detailed health check for monitoring"""
        return {
            "status": "healthy",
            "api_version": API_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "tmdb_cache": get_cache_stats(),
        }

    app.include_router(auth.router)
    app.include_router(groups.router)
    app.include_router(movie_monday.router)
    app.include_router(watchlists.router)
    app.include_router(comments.router)
    app.include_router(statistics.router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=app.state.settings.HOST,
        port=app.state.settings.PORT,
        log_level=app.state.settings.LOG_LEVEL.lower()
    )
