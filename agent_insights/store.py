"""In-memory analytics cache keyed by a change-detection fingerprint.

Every refresh builds a complete `Generation` off to the side and publishes
it with one reference swap, so readers see either the old generation or the
new one and never a mix of both.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from agent_insights import config
from agent_insights.analyzers.conversations import generate_summary
from agent_insights.analyzers.schema import build_schema_snapshot
from agent_insights.date_utils import format_datetime_utc
from agent_insights.fingerprint import conversations_fingerprint
from agent_insights.models import Conversation
from agent_insights.observability import record_load, start_span
from agent_insights.parsers.platforms.registry import SOURCES, load_conversations_by_source

logger = logging.getLogger("insights.store")

ALL_SOURCES = "all"


@dataclass(frozen=True)
class Generation:
    generation_id: str
    fingerprint: str
    loaded_at: str
    conversations_by_source: Mapping[str, list[Conversation]]
    conversations: list[Conversation]
    summaries_by_source: Mapping[str, dict[str, Any]]
    summary: dict[str, Any]
    schema: dict[str, Any] = field(default_factory=dict)

    def conversations_for(self, source: str) -> list[Conversation]:
        if source == ALL_SOURCES:
            return self.conversations
        return self.conversations_by_source.get(source, [])

    def summary_for(self, source: str) -> dict[str, Any] | None:
        if source == ALL_SOURCES:
            return self.summary
        return self.summaries_by_source.get(source)

    def schema_for(self, source: str) -> dict[str, Any] | None:
        if source == ALL_SOURCES:
            return self.schema.get("all")
        return self.schema.get("bySource", {}).get(source)


def _new_generation_id() -> str:
    return f"GEN-{uuid.uuid4()}"


def build_generation(
    roots: Mapping[str, Path] | None,
    fingerprint: str,
    metrics_limit: int = config.CONVERSATION_METRICS_LIMIT,
) -> Generation:
    """Load every source and derive all analytics for one immutable snapshot."""
    by_source = load_conversations_by_source(roots)
    combined = [conv for source in SOURCES for conv in by_source.get(source, [])]
    return Generation(
        generation_id=_new_generation_id(),
        fingerprint=fingerprint,
        loaded_at=format_datetime_utc(datetime.now(timezone.utc)),
        conversations_by_source=by_source,
        conversations=combined,
        summaries_by_source={
            source: generate_summary(by_source.get(source, []), metrics_limit) for source in SOURCES
        },
        summary=generate_summary(combined, metrics_limit),
        schema=build_schema_snapshot(by_source, combined),
    )


class AnalyticsStore:
    """Holds the current generation and rebuilds it when source files change."""

    def __init__(self, roots: Mapping[str, Path] | None = None):
        self._roots = dict(roots) if roots is not None else None
        self._generation: Optional[Generation] = None
        self._refresh_lock = threading.Lock()

    @property
    def current_generation(self) -> Optional[Generation]:
        return self._generation

    def refresh(self, force: bool = False, trigger: str = "request") -> str:
        """Rebuild when forced or when the fingerprint moved; return the generation id."""
        with self._refresh_lock:
            fingerprint = conversations_fingerprint(self._roots)
            current = self._generation
            if not force and current is not None and current.fingerprint == fingerprint:
                return current.generation_id

            t0 = time.monotonic()
            result = "error"
            try:
                with start_span("insights.refresh", {"trigger": trigger, "force": force}):
                    generation = build_generation(self._roots, fingerprint)
                result = "success"
            finally:
                elapsed = int((time.monotonic() - t0) * 1000)
                record_load(trigger, result, elapsed)

            self._generation = generation
            logger.info(
                "Loaded %d conversations in %dms (%s, generation=%s)",
                len(generation.conversations),
                elapsed,
                ", ".join(
                    f"{source}={len(generation.conversations_by_source.get(source, []))}" for source in SOURCES
                ),
                generation.generation_id,
            )
            return generation.generation_id

    def ensure_fresh(self) -> str:
        return self.refresh(force=False)


# Singleton instance
analytics_store = AnalyticsStore()
