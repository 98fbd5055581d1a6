"""Analytics router: summaries, schema profiles and per-aspect breakdowns."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request

from agent_insights.analyzers.conversations import (
    analyze_conversation_metrics,
    analyze_project_activity,
    analyze_task_patterns,
    analyze_tool_usage,
)
from agent_insights.file_watcher import file_watcher
from agent_insights.parsers.platforms.registry import SOURCES
from agent_insights.routers.dependencies import fresh_generation, normalize_source
from agent_insights.store import ALL_SOURCES

health_router = APIRouter(prefix="/api", tags=["health"])
analytics_router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _source_overview(summary: dict[str, Any] | None) -> dict[str, Any]:
    by_day = ((summary or {}).get("timeline") or {}).get("byDay") or []
    return {
        "overview": (summary or {}).get("overview"),
        "recommendationCount": len((summary or {}).get("recommendations") or []),
        "timelineDays": len(by_day),
        "firstDay": by_day[0]["date"] if by_day else None,
        "lastDay": by_day[-1]["date"] if by_day else None,
    }


@health_router.get("/health")
async def health(request: Request):
    """Health check with per-source load counts."""
    generation = await fresh_generation(request)
    return {
        "status": "ok",
        "conversationsLoaded": len(generation.conversations),
        "conversationsBySource": {
            source: len(generation.conversations_for(source)) for source in SOURCES
        },
        "lastLoadTime": generation.loaded_at,
        "generationId": generation.generation_id,
        "watcher": "running" if file_watcher.is_running else "stopped",
    }


@analytics_router.get("/summary")
async def get_summary(request: Request, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    summary = generation.summary_for(resolved)
    if summary is None:
        raise HTTPException(status_code=503, detail="Analytics not ready")
    return summary


@analytics_router.get("/sources")
async def get_sources_overview(request: Request):
    """Headline numbers for the combined view and for each source."""
    generation = await fresh_generation(request)
    return {
        "all": _source_overview(generation.summary),
        "sources": {
            source: _source_overview(generation.summary_for(source)) for source in SOURCES
        },
    }


@analytics_router.get("/schema")
async def get_schema(request: Request, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    if resolved == ALL_SOURCES:
        return {
            "all": generation.schema.get("all"),
            "sources": generation.schema.get("bySource", {}),
        }
    schema = generation.schema_for(resolved)
    if schema is None:
        raise HTTPException(status_code=503, detail="Schema data not ready")
    return schema


@analytics_router.get("/tools")
async def get_tool_usage(request: Request, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    return analyze_tool_usage(generation.conversations_for(resolved))


@analytics_router.get("/tasks")
async def get_task_patterns(request: Request, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    return analyze_task_patterns(generation.conversations_for(resolved))


@analytics_router.get("/projects")
async def get_project_activity(request: Request, source: Optional[str] = None):
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    return analyze_project_activity(generation.conversations_for(resolved))


@analytics_router.get("/metrics")
async def get_conversation_metrics(request: Request, source: Optional[str] = None):
    """Per-conversation metrics without the summary's truncation."""
    resolved = normalize_source(source)
    generation = await fresh_generation(request)
    return analyze_conversation_metrics(generation.conversations_for(resolved))
