import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from sitewatch.monitor_manager import Watchdog
from sitewatch.routers import state_trace, status

logger = logging.getLogger("SiteWatch")


def create_app(watchdog: Optional[Watchdog] = None, start_loop: bool = True) -> FastAPI:
    """
    Build the status API around a watchdog. With start_loop the watchdog
    loop runs as a background task for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("SiteWatch Starting...")
        loop_task = None
        if watchdog is not None and start_loop:
            loop_task = asyncio.create_task(watchdog.run_loop())

        yield

        logger.info("SiteWatch Stopping...")
        if loop_task is not None:
            watchdog.stop()
            # The loop may be parked in a long backoff sleep
            loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await loop_task

    app = FastAPI(title="SiteWatch API", lifespan=lifespan)
    app.state.watchdog = watchdog

    app.include_router(status.router)
    app.include_router(state_trace.router)

    @app.get("/")
    def read_root():
        target = watchdog.config.url if watchdog is not None else None
        return {"status": "online", "service": "SiteWatch", "target": target}

    return app
