"""Script Coach – FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI

from scriptcoach.config import settings
from scriptcoach.database import init_db
from scriptcoach.services.reports import close_abandoned_attempts

# --- Configure logging so scriptcoach.* loggers are visible alongside uvicorn ---
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:    %(name)s - %(message)s",
    stream=sys.stdout,
    force=True,  # override uvicorn's config
)

log = logging.getLogger(__name__)

# --- APScheduler for housekeeping ---
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # --- startup ---
    await init_db()

    scheduler.add_job(
        close_abandoned_attempts,
        trigger=IntervalTrigger(minutes=settings.sweep_interval_minutes),
        id="close_abandoned_attempts",
        name="Finalize practice attempts that were never finished",
        replace_existing=True,
    )
    scheduler.start()
    log.info(
        "Scheduler started – abandoned attempts swept every %d min",
        settings.sweep_interval_minutes,
    )

    yield

    # --- shutdown ---
    scheduler.shutdown(wait=False)
    log.info("Scheduler shut down")


app = FastAPI(title="Script Coach", version="0.1.0", lifespan=lifespan)

# --- Register routers ---
from scriptcoach.routes.sessions import router as sessions_router  # noqa: E402

app.include_router(sessions_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
