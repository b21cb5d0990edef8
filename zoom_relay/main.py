"""Main FastAPI application entry point."""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zoom_relay import logging_client
from zoom_relay.api import messages, webhooks
from zoom_relay.config import settings
from zoom_relay.dependencies import close_clients

# Initialize logger
logger = logging_client.setup_logger(settings.SERVICE_NAME, level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration on startup, close outbound clients on shutdown."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION}...")

    missing = settings.get_missing_settings()
    if missing:
        logger.error(f"Missing required environment variables: {', '.join(missing)}")
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    logger.info(f"Anthropic model: {settings.ANTHROPIC_MODEL} (streaming={settings.LLM_STREAMING})")
    logger.info(f"Zoom API: {settings.ZOOM_API_BASE_URL}")
    if settings.TOKEN_CACHE_ENABLED:
        logger.info(f"Chatbot token cache enabled (refresh margin {settings.TOKEN_REFRESH_MARGIN_SECONDS}s)")
    else:
        logger.warning("Chatbot token cache disabled, every send fetches a new token")
    if not settings.INTERNAL_API_KEY:
        logger.warning("INTERNAL_API_KEY not set, /api endpoints are unauthenticated")

    logger.info(f"Zoom relay ready on {settings.HOST}:{settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_clients()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(messages.router, prefix="/api", tags=["messages"])


@app.get("/health")
async def health_check():
    """Service health."""
    return {
        "status": "healthy",
        "service": settings.SERVICE_NAME,
        "version": settings.VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "webhook": "/webhooks"
    }


def run():
    """Serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "zoom_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
