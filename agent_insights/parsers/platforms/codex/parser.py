"""Parse Codex CLI session logs into Conversation models.

Codex writes one JSON record per line, discriminated by a top-level `type`:

- ``session_meta``: session id, working directory, CLI/provider details.
- ``response_item``: conversational payloads, themselves typed as
  ``message``, ``function_call`` or ``custom_tool_call`` (others are tallied).
- ``event_msg``: UI/runtime events, tallied only.

Anything else is counted under ``unknownRecordTypeCounts``.
"""
from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

from agent_insights import config
from agent_insights.date_utils import file_mtime
from agent_insights.models import Conversation, Message
from agent_insights.parsers.jsonl import read_jsonl, walk_files
from agent_insights.parsers.normalize import (
    backfill_timestamps,
    extract_text,
    placeholder_message,
    tool_use_item,
)

logger = logging.getLogger("insights.parsers.codex")

PLATFORM = "codex"

SESSION_META = "session_meta"
RESPONSE_ITEM = "response_item"
EVENT_MSG = "event_msg"

PAYLOAD_MESSAGE = "message"
TOOL_CALL_PAYLOADS = ("function_call", "custom_tool_call")

_ROLE_TO_TYPE = {"user": "user", "assistant": "assistant"}


def _payload(entry: dict[str, Any]) -> dict[str, Any]:
    payload = entry.get("payload")
    return payload if isinstance(payload, dict) else {}


def _response_item_message(payload: dict[str, Any], timestamp: str) -> Message | None:
    payload_type = payload.get("type")
    if payload_type == PAYLOAD_MESSAGE:
        text = extract_text(payload.get("content"))
        if not text:
            return None
        return Message(
            type=_ROLE_TO_TYPE.get(str(payload.get("role") or ""), "system"),
            timestamp=timestamp,
            content=text,
        )
    if payload_type in TOOL_CALL_PAYLOADS:
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            return None
        return Message(type="assistant", timestamp=timestamp, content=[tool_use_item(name)])
    return None


def parse_session_file(path: Path) -> Conversation | None:
    """Parse one Codex session log. Returns ``None`` when unreadable."""
    entries = read_jsonl(path)
    if entries is None:
        return None

    fallback = file_mtime(path)
    timestamps = backfill_timestamps([entry.get("timestamp") for entry in entries], fallback)

    session_payload: dict[str, Any] = {}
    record_types: Counter[str] = Counter()
    response_item_types: Counter[str] = Counter()
    event_types: Counter[str] = Counter()
    unknown_types: Counter[str] = Counter()
    messages: list[Message] = []

    for entry, timestamp in zip(entries, timestamps):
        record_type = str(entry.get("type") or "unknown")
        record_types[record_type] += 1
        payload = _payload(entry)

        if record_type == SESSION_META:
            if not session_payload:
                session_payload = payload
        elif record_type == RESPONSE_ITEM:
            response_item_types[str(payload.get("type") or "unknown")] += 1
            message = _response_item_message(payload, timestamp)
            if message is not None:
                messages.append(message)
        elif record_type == EVENT_MSG:
            event_types[str(payload.get("type") or "unknown")] += 1
        else:
            unknown_types[record_type] += 1

    if unknown_types:
        logger.debug("Unhandled Codex record types in %s: %s", path, dict(unknown_types))

    if not messages:
        messages.append(placeholder_message(fallback))

    return Conversation(
        conversationId=str(session_payload.get("id") or path.stem),
        project=str(session_payload.get("cwd") or "unknown"),
        platform=PLATFORM,
        sourceKind="main",
        path=str(path),
        metadata={
            "cliVersion": session_payload.get("cli_version"),
            "modelProvider": session_payload.get("model_provider"),
            "originator": session_payload.get("originator"),
            "sourceClient": session_payload.get("source"),
            "recordTypeCounts": dict(record_types),
            "responseItemTypeCounts": dict(response_item_types),
            "eventTypeCounts": dict(event_types),
            "unknownRecordTypeCounts": dict(unknown_types),
        },
        messages=messages,
    )


def discover_files(sessions_dir: Path) -> list[Path]:
    return walk_files(sessions_dir, lambda p: p.suffix == ".jsonl")


def scan_conversations(sessions_dir: Path | None = None) -> list[Conversation]:
    root = sessions_dir or config.CODEX_SESSIONS_DIR
    conversations: list[Conversation] = []
    for path in discover_files(root):
        conversation = parse_session_file(path)
        if conversation:
            conversations.append(conversation)
    return conversations
