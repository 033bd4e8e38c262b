"""
RFP Manager - FastAPI Application

Main API server for RFP creation, vendor outreach and proposal review.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from config.logging_config import setup_logging
from database.connection import init_db, close_db
from api.auth.router import router as auth_router
from api.routes.ai import router as ai_router
from api.routes.email import router as email_router
from api.routes.rfps import router as rfps_router
from api.routes.vendors import router as vendors_router
from api.middleware.error_handler import setup_error_handlers
from api.middleware.logging import LoggingMiddleware
from api.middleware.rate_limit import setup_rate_limiting
from workers.email_poller import create_poller

# Set up logging
logger = setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management."""
    logger.info("Starting RFP Manager API...")
    logger.info(f"Environment: {settings.api_env}")
    logger.info(f"LLM Provider: {settings.llm_provider.value}")

    await init_db()

    # Mailbox poller: available for manual checks whenever credentials exist
    app.state.email_poller = create_poller() if settings.email_configured else None
    if app.state.email_poller and settings.email_polling_enabled:
        await app.state.email_poller.start()
    elif not settings.email_configured:
        logger.info("Email not configured, inbound polling disabled")

    yield

    if app.state.email_poller:
        await app.state.email_poller.stop()
    await close_db()

    logger.info("Shutting down RFP Manager API...")


# Create FastAPI app
app = FastAPI(
    title="RFP Manager API",
    description="RFP workflow management with vendor email correlation and AI drafting",
    version="1.0.0",
    lifespan=lifespan
)

# Set up error handlers (before middleware)
setup_error_handlers(app)

# Set up rate limiting
setup_rate_limiting(app)

# Add logging middleware
app.add_middleware(LoggingMiddleware)

# Configure CORS (should be last middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# API Routes
# ============================================================================

app.include_router(auth_router, prefix="/api")
app.include_router(rfps_router, prefix="/api")
app.include_router(vendors_router, prefix="/api")
app.include_router(ai_router, prefix="/api")
app.include_router(email_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "RFP Manager API",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.api_env,
        "llm_provider": settings.llm_provider.value,
        "model": settings.default_model,
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.api_env
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
