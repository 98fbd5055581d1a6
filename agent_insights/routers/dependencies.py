"""Request helpers shared by the API routers."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import HTTPException, Request

from agent_insights.parsers.platforms.registry import is_known_source
from agent_insights.store import ALL_SOURCES, AnalyticsStore, Generation

logger = logging.getLogger("insights.api")


def normalize_source(source: Optional[str]) -> str:
    """Lower-case a ``source`` query value; blank means every source."""
    token = (source or "").strip().lower()
    if not token or token == ALL_SOURCES:
        return ALL_SOURCES
    if not is_known_source(token):
        raise HTTPException(status_code=400, detail=f'Invalid source "{token}"')
    return token


def get_store(request: Request) -> AnalyticsStore:
    store = getattr(request.app.state, "analytics_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Analytics store not initialized")
    return store


async def fresh_generation(request: Request) -> Generation:
    """Refresh when source files changed, then return the published generation."""
    store = get_store(request)
    try:
        await asyncio.to_thread(store.ensure_fresh)
    except Exception as exc:
        logger.exception("Failed to refresh conversation data")
        raise HTTPException(status_code=500, detail="Failed to load conversation data") from exc

    generation = store.current_generation
    if generation is None:
        raise HTTPException(status_code=503, detail="Data not loaded")
    return generation
