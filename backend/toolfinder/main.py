"""Toolfinder API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ToolfinderError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager
    - Embedded queue worker (when enabled) is stopped and drained before the
      engine is disposed

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Worker embedded by default: one process serves commands and drains the queue;
      set RUN_EMBEDDED_WORKER=false and run `python -m toolfinder.worker_main` to split
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolfinder.api import dependencies
from toolfinder.api.error_handlers import register_error_handlers
from toolfinder.api.routes import health, problems, prompts, slack_commands, tools
from toolfinder.config import get_settings
from toolfinder.infrastructure import database
from toolfinder.infrastructure.observability import setup_logging
from toolfinder.services.service_factory import build_worker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    worker = None
    worker_task = None
    if settings.run_embedded_worker:
        worker = build_worker(
            settings,
            database.get_db_manager().session,
            dependencies.get_completion(),
            dependencies.get_notifier(),
            dependencies.get_page_fetcher(),
        )
        worker_task = asyncio.create_task(worker.run())
    logger.info("Toolfinder API started")
    yield
    logger.info("Toolfinder API shutting down")
    if worker is not None:
        worker.stop()
        await worker_task
    await dependencies.close_clients()
    await database.get_db_manager().dispose()


app = FastAPI(
    title="Toolfinder API", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(problems.router)
app.include_router(tools.router)
app.include_router(prompts.router)
app.include_router(slack_commands.router)
