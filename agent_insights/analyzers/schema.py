"""Field-level schema profiling of normalized conversations per source."""
from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Mapping, Sequence

from agent_insights.models import Conversation, Message, present_fields
from agent_insights.parsers.platforms.registry import SOURCES

UNIQUE_FIELD_KEYS = (
    ("uniqueConversationFields", "conversationFields"),
    ("uniqueMetadataFields", "metadataFields"),
    ("uniqueMessageFields", "messageFields"),
)


def _sorted_counts(counts: Counter[str]) -> list[dict[str, Any]]:
    # Stable sort keeps first-seen order for ties.
    ranked = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked]


def content_shape(message: Message) -> str:
    content = message.content
    if isinstance(content, str):
        return "string"
    if isinstance(content, list):
        return "array"
    if content is None:
        return "nullish"
    return "object"


def create_source_schema(source: str, conversations: Sequence[Conversation]) -> dict[str, Any]:
    conversation_fields: Counter[str] = Counter()
    metadata_fields: Counter[str] = Counter()
    message_fields: Counter[str] = Counter()
    message_types: Counter[str] = Counter()
    content_shapes: Counter[str] = Counter()
    content_item_types: Counter[str] = Counter()
    tool_names: Counter[str] = Counter()
    message_count = 0

    for conv in conversations:
        conversation_fields.update(present_fields(conv))
        metadata_fields.update(conv.metadata.keys())
        for message in conv.messages:
            message_count += 1
            message_fields.update(present_fields(message))
            message_types[message.type or "unknown"] += 1
            content_shapes[content_shape(message)] += 1
            if not isinstance(message.content, list):
                continue
            for item in message.content:
                if item.type:
                    content_item_types[item.type] += 1
                if item.type == "tool_use" and item.name:
                    tool_names[item.name] += 1

    return {
        "source": source,
        "conversationCount": len(conversations),
        "messageCount": message_count,
        "conversationFields": _sorted_counts(conversation_fields),
        "metadataFields": _sorted_counts(metadata_fields),
        "messageFields": _sorted_counts(message_fields),
        "messageTypes": _sorted_counts(message_types),
        "contentShapes": _sorted_counts(content_shapes),
        "contentItemTypes": _sorted_counts(content_item_types),
        "toolNames": _sorted_counts(tool_names),
        "uniqueConversationFields": [],
        "uniqueMetadataFields": [],
        "uniqueMessageFields": [],
    }


def unique_fields(
    schemas: Mapping[str, dict[str, Any]],
    source: str,
    selector: Callable[[dict[str, Any]], list[dict[str, Any]]],
) -> list[str]:
    """Field names seen in ``source`` and in no other profiled source, sorted."""
    own = {entry["name"] for entry in selector(schemas[source])}
    others: set[str] = set()
    for other_source, schema in schemas.items():
        if other_source != source:
            others.update(entry["name"] for entry in selector(schema))
    return sorted(own - others)


def build_schema_snapshot(
    by_source: Mapping[str, Sequence[Conversation]],
    all_conversations: Sequence[Conversation],
    sources: Sequence[str] = SOURCES,
) -> dict[str, Any]:
    schemas = {source: create_source_schema(source, by_source.get(source, [])) for source in sources}
    for source in sources:
        for unique_key, field_key in UNIQUE_FIELD_KEYS:
            schemas[source][unique_key] = unique_fields(schemas, source, lambda schema, key=field_key: schema[key])

    return {
        "bySource": schemas,
        "all": create_source_schema("all", all_conversations),
    }
