"""Helpers shared by the per-platform normalizers."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from agent_insights.date_utils import format_datetime_utc, offset_timestamp, parse_iso
from agent_insights.models import ContentItem, Message

logger = logging.getLogger("insights.parsers")

# Keys that may carry free text inside a content item, in lookup order.
TEXT_KEYS = ("text", "input_text", "output_text")

METADATA_ONLY_SESSION = "Session metadata only"
METADATA_ONLY_TRANSCRIPT = "Transcript metadata only"


def item_text(item: Any) -> str:
    if not isinstance(item, dict):
        return ""
    for key in TEXT_KEYS:
        value = item.get(key)
        if isinstance(value, str):
            return value
    return ""


def extract_text(content: Any) -> str:
    """Pull free text out of a string or a list of differently-shaped items."""
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return ""
    parts = [item_text(item) for item in content]
    return "\n".join(part for part in parts if part).strip()


def message_text(message: Message) -> str:
    content = message.content
    if isinstance(content, list):
        return extract_text([item.model_dump() for item in content])
    return extract_text(content)


def coerce_content_items(raw_items: list[Any]) -> list[ContentItem]:
    """Convert raw content blocks to `ContentItem`; unusable blocks are dropped."""
    items: list[ContentItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        try:
            items.append(ContentItem.model_validate(raw))
        except ValidationError as exc:
            logger.debug("Dropping unrecognized content item (%s): %s", raw.get("type"), exc.errors()[:1])
    return items


def coerce_content(raw: Any) -> str | list[ContentItem] | dict[str, Any] | None:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return coerce_content_items(raw)
    if isinstance(raw, dict):
        return raw
    return None


def tool_use_item(name: str) -> ContentItem:
    return ContentItem(type="tool_use", name=name)


def backfill_timestamps(raw_values: Sequence[Any], fallback: datetime) -> list[str]:
    """Resolve one timestamp per record, keeping them in file order.

    Records without a usable timestamp inherit the previous record's value;
    leading ones inherit the first later value. When nothing in the file
    carries a timestamp, `fallback` plus a per-item millisecond offset is used.
    """
    parsed: list[Optional[str]] = []
    for value in raw_values:
        dt = parse_iso(value)
        parsed.append(value.strip() if dt is not None and isinstance(value, str) else None)

    first_known = next((value for value in parsed if value), None)
    if first_known is None:
        return [offset_timestamp(fallback, index) for index in range(len(parsed))]

    resolved: list[str] = []
    previous = first_known
    for value in parsed:
        if value:
            previous = value
        resolved.append(previous)
    return resolved


def placeholder_message(fallback: datetime, text: str = METADATA_ONLY_SESSION) -> Message:
    return Message(type="system", timestamp=format_datetime_utc(fallback), content=text)
