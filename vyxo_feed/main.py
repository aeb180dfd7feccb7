"""
VYXO Feed Backend

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .core.logging import setup_logging, get_logger
from .core.exceptions import register_exception_handlers
from .db.session import dispose_db, init_db
from .routers import feed_router, videos_router, scheduler_router
from .routers.feed import limiter
from .routers.scheduler import get_scheduler_service

# Initialize
settings = get_settings()
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        "app_startup",
        environment=settings.environment,
        debug=settings.debug
    )
    
    # Production schemas are managed outside the app
    if settings.environment == "development":
        await init_db()
    
    if settings.scheduler_enabled:
        get_scheduler_service().start()
        logger.info("scheduler_auto_started")
    else:
        logger.info("scheduler_disabled")
    
    yield
    
    # Cleanup on shutdown
    if settings.scheduler_enabled:
        get_scheduler_service().stop()
    await dispose_db()
    
    logger.info("app_shutdown")


# Create FastAPI app
app = FastAPI(
    title="VYXO Feed Backend",
    description="For You and Trending feeds for VYXO short-form video",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else ["https://vyxo.app"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
register_exception_handlers(app)

# Include routers
app.include_router(feed_router)
app.include_router(videos_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "VYXO Feed Backend",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.debug else "disabled",
        "scheduler": "enabled" if settings.scheduler_enabled else "manual",
    }


@app.get("/health")
async def health():
    """Health check for load balancers."""
    return {"status": "healthy"}
