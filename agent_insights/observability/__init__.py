"""Observability helpers."""

from agent_insights.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_load,
    record_parser_failure,
    record_conversations_loaded,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_load",
    "record_parser_failure",
    "record_conversations_loaded",
]
