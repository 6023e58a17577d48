"""Survey Engine API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SurveyEngineError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Logging and the database are initialized on startup via the lifespan

Design Decisions:
    - Lifespan over @app.on_event: cleaner startup/shutdown pairing
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from survey_engine.api.error_handlers import register_error_handlers
from survey_engine.api.routes import health, survey_assistant, survey_responses, surveys
from survey_engine.config import get_settings
from survey_engine.infrastructure.database import init_db
from survey_engine.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Survey Engine API started")
    yield
    await manager.dispose()
    logger.info("Survey Engine API shutting down")


app = FastAPI(title="Survey Engine API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(survey_assistant.router)
app.include_router(surveys.router)
app.include_router(survey_responses.router)

register_error_handlers(app)
