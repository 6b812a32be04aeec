"""Quote Dashboard FastAPI Application.

Proxies the upstream chart API for the dashboard frontend, with a short-lived
cache in front of every upstream call.
"""

import logging
import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import health, quotes
from .services.config import config_service, ConfigValidationException
from .services.logging_service import configure_logging
from .services.quote_service import quote_service, QuoteServiceSettings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: Validate configuration
    try:
        config_service.load_and_validate()
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)

    configure_logging(config_service)
    quote_service.configure(QuoteServiceSettings.from_config(config_service))

    # Warm up the crumb; routes acquire one lazily if this fails
    await quote_service.start()

    yield

    await quote_service.close()
    logger.info("Upstream transport closed")


app = FastAPI(
    title="Quote Dashboard API",
    description="Cached market quotes and price history for the dashboard",
    version="1.0.0",
    lifespan=lifespan,
)

def _cors_origins():
    """Origins must be known before the app starts, so read config eagerly."""
    try:
        config_service.load_and_validate()
    except ConfigValidationException:
        # lifespan reports it and exits
        return []
    return config_service.get("cors.allow_origins", ["*"])


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(quotes.router, prefix="/api", tags=["Quotes"])


@app.get("/")
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Quote Dashboard API", "docs": "/docs"}
