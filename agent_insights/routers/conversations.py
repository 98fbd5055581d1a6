"""Conversation browsing, keyword search, raw history and manual reload."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request

from agent_insights import config
from agent_insights.models import Conversation
from agent_insights.parsers.normalize import message_text
from agent_insights.parsers.platforms.claude_code.parser import read_history
from agent_insights.routers.dependencies import fresh_generation, get_store, normalize_source

logger = logging.getLogger("insights.api")

conversations_router = APIRouter(prefix="/api", tags=["conversations"])

SEARCH_PREVIEW_CHARS = 200


def _conversation_listing(conv: Conversation) -> dict[str, Any]:
    return {
        "conversationId": conv.conversationId,
        "platform": conv.platform,
        "sourceKind": conv.sourceKind,
        "parentConversationId": conv.parentConversationId,
        "project": conv.project,
        "messageCount": len(conv.messages),
        "firstMessage": conv.messages[0].timestamp,
        "lastMessage": conv.messages[-1].timestamp,
    }


def search_conversations(conversations: list[Conversation], query: str) -> list[dict[str, Any]]:
    """Case-insensitive substring search over extracted message text."""
    needle = query.lower()
    results: list[dict[str, Any]] = []
    for conv in conversations:
        matching = [text for text in (message_text(m) for m in conv.messages) if needle in text.lower()]
        if not matching:
            continue
        results.append({
            "conversationId": conv.conversationId,
            "platform": conv.platform,
            "project": conv.project,
            "matches": len(matching),
            "preview": matching[0][:SEARCH_PREVIEW_CHARS],
        })
    return results


@conversations_router.get("/conversations")
async def list_conversations(request: Request, source: Optional[str] = None):
    """Lightweight listing of every conversation in the selected source."""
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    return [_conversation_listing(conv) for conv in generation.conversations_for(resolved)]


@conversations_router.get("/conversations/{conversation_id}")
async def get_conversation(request: Request, conversation_id: str, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    for conv in generation.conversations_for(resolved):
        if conv.conversationId == conversation_id:
            return conv.model_dump()
    raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")


@conversations_router.get("/search")
async def search(request: Request, q: Optional[str] = None, source: Optional[str] = None):
    if not q:
        raise HTTPException(status_code=400, detail='Query parameter "q" is required')
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    results = search_conversations(generation.conversations_for(resolved), q)
    return {
        "query": q,
        "resultsCount": len(results),
        "results": results[: config.SEARCH_RESULTS_LIMIT],
    }


@conversations_router.get("/history")
async def get_history():
    """Raw entries of the native prompt history file."""
    return await asyncio.to_thread(read_history)


@conversations_router.post("/reload")
async def reload_conversations(request: Request):
    """Force a full rebuild regardless of the fingerprint."""
    store = get_store(request)
    try:
        generation_id = await asyncio.to_thread(store.refresh, True, "api")
    except Exception as exc:
        logger.exception("Manual reload failed")
        raise HTTPException(status_code=500, detail=f"Reload failed: {exc}") from exc

    generation = store.current_generation
    return {
        "success": True,
        "generationId": generation_id,
        "conversationsLoaded": len(generation.conversations) if generation else 0,
        "lastLoadTime": generation.loaded_at if generation else None,
    }
