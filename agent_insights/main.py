"""Agent Insights FastAPI backend: main application entry point."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_insights import config
from agent_insights.file_watcher import file_watcher
from agent_insights.observability import initialize as initialize_observability, shutdown as shutdown_observability
from agent_insights.parsers.platforms.registry import default_roots
from agent_insights.routers.analytics import analytics_router, health_router
from agent_insights.routers.conversations import conversations_router
from agent_insights.store import analytics_store

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("insights")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Agent Insights backend starting up")
    initialize_observability(app)
    app.state.analytics_store = analytics_store

    async def _run_startup_load() -> None:
        try:
            await asyncio.to_thread(analytics_store.refresh, True, "startup")
        except Exception as e:
            logger.error(f"Initial conversation load failed: {e}")

    # Load in the background; requests arriving first wait on the store lock.
    app.state.load_task = asyncio.create_task(_run_startup_load())

    if config.WATCH_ENABLED:
        await file_watcher.start(analytics_store, default_roots().values())

    yield

    logger.info("Agent Insights backend shutting down")

    app.state.load_task.cancel()
    try:
        await app.state.load_task
    except asyncio.CancelledError:
        pass

    await file_watcher.stop()
    shutdown_observability(app)


app = FastAPI(
    title="Agent Insights API",
    description="Analytics over local AI coding assistant session logs",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the Vite dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(analytics_router)
app.include_router(conversations_router)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
