"""Item Purchase Tool API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PurchaseToolError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and its engine disposed on shutdown (lifespan)

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handler layers live in api/error_handlers.py: domain, framework HTTP,
      request validation, catch-all
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from purchase_tool.api.dependencies import close_image_client
from purchase_tool.api.error_handlers import register_error_handlers
from purchase_tool.api.routes import health, purchase_sessions
from purchase_tool.config import get_settings
from purchase_tool.infrastructure.database import close_db, init_db
from purchase_tool.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Item Purchase Tool API started")
    yield
    await close_image_client()
    await close_db()
    logger.info("Item Purchase Tool API shutting down")


app = FastAPI(
    title="Item Purchase Tool API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(purchase_sessions.router)

register_error_handlers(app)
