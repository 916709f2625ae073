"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (schema, execution engine,
resume scheduler, Redis event listener, DB engine dispose).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from autoflow.core.config import get_settings
from autoflow.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, schema (if auto-create), execution engine and
    resume scheduler, Redis event listener (if enabled). Shutdown order:
    listener, engine (scheduler then in-flight runs), SQL engine dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    from autoflow.infrastructure.persistence import database
    from autoflow.infrastructure.services import build_engine

    if settings.database_auto_create:
        await database.create_schema()

    engine = build_engine(database.get_session_factory(), settings=settings)
    engine.start()
    app.state.engine = engine

    if settings.redis_enabled:
        from autoflow.infrastructure.messaging.redis_pubsub import (
            run_domain_event_listener,
        )

        app.state.event_listener_task = asyncio.create_task(
            run_domain_event_listener(engine.matcher)
        )
    else:
        app.state.event_listener_task = None

    yield

    # ---- Shutdown ----
    listener_task = getattr(app.state, "event_listener_task", None)
    if listener_task is not None:
        listener_task.cancel()
        try:
            await listener_task
        except asyncio.CancelledError:
            pass
        logger.info("Domain event listener stopped")

    await engine.shutdown()
    logger.info("Workflow engine stopped")

    await database.dispose_engine()
