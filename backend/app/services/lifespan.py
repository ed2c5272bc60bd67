"""Application lifespan: logging setup, notification relay, Redis teardown.

Usage (main.py):

    from app.services.lifespan import lifespan
    app = FastAPI(lifespan=lifespan, ...)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.services.notifications import relay_forever
from app.utils.cache import close_redis

logger = logging.getLogger("repotrack.lifespan")


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the Redis notification relay (if enabled); stop it on shutdown."""
    configure_logging()

    task = None
    if settings.notification_relay == "redis":
        task = asyncio.create_task(relay_forever())
        logger.info("Notification relay started")
    try:
        yield
    finally:
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Notification relay stopped")
        await close_redis()
