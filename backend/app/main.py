from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.core.config import settings
from app.core.database import SessionLocal, init_db
from app.core.exceptions import register_exception_handlers
from app.core.logging_config import CorrelationIdMiddleware, log_event, setup_logging
from app.api.endpoints import capture, items, search, statistics, tags
from app.services.capture import CaptureLoop
from app.services.clipboard_service import CaptureProcessor
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import logging

# Configure structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.RATE_LIMIT])


def build_capture_loop(app: FastAPI) -> CaptureLoop:
    """Capture loop whose processor reads the app's current capture settings."""
    loop = CaptureLoop(app.state.capture_settings)
    loop.set_processor(CaptureProcessor(SessionLocal, lambda: app.state.capture_settings))
    return loop


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting ClipDeck application...")

    init_db()

    app.state.capture_settings = settings.capture_settings
    app.state.capture_loop = build_capture_loop(app)
    if app.state.capture_settings.auto_capture:
        app.state.capture_loop.start()

    if not settings.llm_configured:
        logger.warning("OPENAI_API_KEY is not set; AI tag generation is disabled")

    log_event(
        "app.startup",
        "ClipDeck application started",
        event_category="system",
        auto_capture=app.state.capture_settings.auto_capture,
        debug=settings.DEBUG,
    )

    yield

    # Shutdown
    logger.info("Shutting down ClipDeck application...")
    app.state.capture_loop.stop()


app = FastAPI(
    title="ClipDeck - Clipboard History",
    description="Clipboard capture, classification, tagging and search",
    version="1.0.0",
    lifespan=lifespan,
)

# Add correlation ID middleware (first, so all logs have correlation IDs)
app.add_middleware(CorrelationIdMiddleware)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(items.router, prefix="/api/items", tags=["items"])
app.include_router(search.router, prefix="/api/search", tags=["search"])
app.include_router(tags.router, prefix="/api/tags", tags=["tags"])
app.include_router(statistics.router, prefix="/api/statistics", tags=["statistics"])
app.include_router(capture.router, prefix="/api/capture", tags=["capture"])


@app.get("/")
def root():
    return {
        "name": "ClipDeck",
        "version": "1.0.0",
        "description": "Clipboard History",
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}
